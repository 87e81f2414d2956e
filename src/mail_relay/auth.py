"""API key authentication."""

from typing import Optional

import structlog

from mail_relay.errors import AuthError
from mail_relay.metrics import auth_failures_total


logger = structlog.get_logger()


def is_authorized(header_value: Optional[str], api_key: str) -> bool:
    """Return True if the X-API-Key header matches the configured secret.

    Comparison is exact and case-sensitive. A missing header is never
    authorized.
    """
    if header_value is None:
        return False
    return header_value == api_key


def check_api_key(header_value: Optional[str], api_key: str) -> None:
    """Validate the X-API-Key header.

    Args:
        header_value: Raw header value, or None if the header is absent
        api_key: Configured shared secret

    Raises:
        AuthError: If the header is missing or does not match
    """
    if header_value is None:
        logger.warning("No API key provided in request")
        auth_failures_total.labels(reason="missing").inc()
        raise AuthError("Missing API key")

    if not is_authorized(header_value, api_key):
        logger.warning("Invalid API key provided")
        auth_failures_total.labels(reason="invalid").inc()
        raise AuthError("Invalid API key")

    logger.debug("API key validation successful")
