"""TLS utilities for SMTP relay connections."""

import ssl

import structlog


logger = structlog.get_logger()

IMPLICIT_TLS_PORT = 465
SUBMISSION_PORT = 587


def resolve_tls_mode(mode: str, port: int) -> str:
    """Resolve the ``auto`` TLS mode from the relay port.

    Port 465 uses implicit TLS, port 587 requires STARTTLS, any other
    port upgrades opportunistically.

    Returns:
        One of ``implicit``, ``starttls`` or ``opportunistic``
    """
    if mode != "auto":
        return mode
    if port == IMPLICIT_TLS_PORT:
        return "implicit"
    if port == SUBMISSION_PORT:
        return "starttls"
    return "opportunistic"


def create_client_tls_context(verify_certs: bool = True) -> ssl.SSLContext:
    """Create a TLS context for connecting to the SMTP relay.

    Allows TLS 1.2 and 1.3 only. With ``verify_certs`` disabled the relay's
    certificate and hostname are not checked, which is only suitable for
    relays using self-signed certificates.

    Args:
        verify_certs: Whether to verify the relay certificate

    Returns:
        Configured SSL context
    """
    context = ssl.create_default_context(ssl.Purpose.SERVER_AUTH)
    context.minimum_version = ssl.TLSVersion.TLSv1_2

    if not verify_certs:
        logger.warning("SMTP relay certificate verification disabled")
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE

    return context
