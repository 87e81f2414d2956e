"""POST /send-email endpoint."""

from typing import Any

import structlog
from fastapi import APIRouter, Depends, Request

from mail_relay.config import AppConfig
from mail_relay.errors import ValidationError
from mail_relay.http.dependencies import get_config, get_dispatcher, require_api_key
from mail_relay.mail.dispatcher import MailDispatcher
from mail_relay.models import SendEmailResponse
from mail_relay.validation import parse_request, resolve_request


logger = structlog.get_logger()

router = APIRouter()


async def _read_json_body(request: Request) -> Any:
    content_type = request.headers.get("content-type", "")
    if "json" not in content_type.split(";")[0].lower():
        raise ValidationError("Content-Type must be application/json")

    try:
        return await request.json()
    except ValueError:
        raise ValidationError("Request body must be valid JSON")


@router.post(
    "/send-email",
    response_model=SendEmailResponse,
    response_model_exclude_none=True,
    dependencies=[Depends(require_api_key)],
)
async def send_email(
    request: Request,
    config: AppConfig = Depends(get_config),
    dispatcher: MailDispatcher = Depends(get_dispatcher),
) -> SendEmailResponse:
    """Validate the payload, apply defaults and hand the email to the relay.

    Authentication runs first as a dependency, so an unauthorized caller
    never gets its body parsed. Errors raised here are rendered by the
    RelayError handler registered in ``create_app``.
    """
    data = await _read_json_body(request)
    payload = parse_request(data)
    email = resolve_request(payload, config.email)

    await dispatcher.send(email)

    logger.info("Email sent successfully", to_addr=email.to_addr)
    return SendEmailResponse(success=True, message="Email sent successfully")
