"""Mail Relay.

A small HTTP service that forwards authenticated JSON requests as email
through an SMTP relay.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
