"""FastAPI dependencies shared by the HTTP routes."""

from typing import Optional

from fastapi import Depends, Header, Request

from mail_relay.auth import check_api_key
from mail_relay.config import AppConfig
from mail_relay.mail.dispatcher import MailDispatcher


def get_config(request: Request) -> AppConfig:
    """Return the configuration loaded at startup."""
    return request.app.state.config


def get_dispatcher(request: Request) -> MailDispatcher:
    """Return the mail dispatcher bound to the application."""
    return request.app.state.dispatcher


async def require_api_key(
    x_api_key: Optional[str] = Header(default=None, alias="X-API-Key"),
    config: AppConfig = Depends(get_config),
) -> None:
    """Reject the request with 401 unless X-API-Key matches the configured secret."""
    check_api_key(x_api_key, config.server.api_key.get_secret_value())
