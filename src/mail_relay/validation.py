"""Request validation and defaulting."""

from typing import Any, Optional

import structlog
from pydantic import ValidationError as PydanticValidationError

from mail_relay.config import EmailConfig
from mail_relay.errors import ValidationError
from mail_relay.metrics import validation_failures_total
from mail_relay.models import ResolvedEmail, SendEmailRequest


logger = structlog.get_logger()

REQUIRED_FIELDS = ("subject", "body")


def resolve(value: Optional[str], default: str) -> str:
    """Return ``value`` unless it is absent or empty, else ``default``."""
    if value:
        return value
    return default


def _reject(reason: str) -> ValidationError:
    logger.warning("Request validation failed", reason=reason)
    validation_failures_total.inc()
    return ValidationError(reason)


def parse_request(data: Any) -> SendEmailRequest:
    """Validate a decoded JSON body.

    Args:
        data: Decoded JSON value

    Returns:
        Parsed request

    Raises:
        ValidationError: If the body is not an object or a field has the wrong type
    """
    if not isinstance(data, dict):
        raise _reject("Request body must be a JSON object")

    try:
        return SendEmailRequest.model_validate(data)
    except PydanticValidationError as e:
        fields = sorted({str(item["loc"][0]) for item in e.errors() if item["loc"]})
        raise _reject(f"Invalid field type: {', '.join(fields)} must be a string")


def resolve_request(request: SendEmailRequest, config: EmailConfig) -> ResolvedEmail:
    """Apply configured defaults and enforce required fields.

    Args:
        request: Parsed request body
        config: Email defaults

    Returns:
        Fully-resolved email

    Raises:
        ValidationError: If subject or body is missing or empty
    """
    for field in REQUIRED_FIELDS:
        if not getattr(request, field):
            raise _reject(f"Missing required field: {field}")

    resolved = ResolvedEmail(
        from_addr=resolve(request.from_, config.email_from),
        to_addr=resolve(request.to, config.email_to),
        sender_name=resolve(request.sender_name, config.sender_name),
        subject=request.subject,
        body=request.body,
    )

    logger.debug(
        "Request resolved",
        from_addr=resolved.from_addr,
        to_addr=resolved.to_addr,
        default_from=not request.from_,
        default_to=not request.to,
        default_sender_name=not request.sender_name,
    )
    return resolved
