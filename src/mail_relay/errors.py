"""Error taxonomy for Mail Relay."""


class RelayError(Exception):
    """Base class for Mail Relay errors."""

    status_code = 500


class ConfigError(RelayError):
    """Configuration file missing or invalid. Fatal at startup."""

    pass


class AuthError(RelayError):
    """API key missing or incorrect."""

    status_code = 401


class ValidationError(RelayError):
    """Request payload invalid or missing required fields."""

    status_code = 400


class DeliveryError(RelayError):
    """SMTP relay could not accept the message."""

    status_code = 500
