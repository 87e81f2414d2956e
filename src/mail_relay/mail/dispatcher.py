"""SMTP delivery of resolved emails."""

import asyncio
import time
from email.errors import HeaderParseError
from email.message import EmailMessage
from email.utils import formatdate, make_msgid
from typing import Any

import aiosmtplib
import structlog

from mail_relay.config import EmailConfig
from mail_relay.errors import DeliveryError
from mail_relay.mail.tls import create_client_tls_context, resolve_tls_mode
from mail_relay.metrics import emails_sent_total, smtp_session_seconds
from mail_relay.models import ResolvedEmail


logger = structlog.get_logger()


def _addr_specs(message: EmailMessage, header_name: str) -> list[str]:
    header = message[header_name]
    addresses = getattr(header, "addresses", ())
    if not addresses:
        raise DeliveryError(
            f"Failed to send email: invalid {header_name} address: {header!s}"
        )

    specs = []
    for address in addresses:
        if not address.username or not address.domain:
            raise DeliveryError(
                f"Failed to send email: invalid {header_name} address: {address.addr_spec!r}"
            )
        specs.append(address.addr_spec)
    return specs


def envelope_addresses(message: EmailMessage) -> tuple[str, list[str]]:
    """Return the SMTP envelope sender and recipients parsed from the headers.

    Raises:
        DeliveryError: If From or To holds no address with both a local
            part and a domain
    """
    sender = _addr_specs(message, "From")[0]
    recipients = _addr_specs(message, "To")
    return sender, recipients


class MailDispatcher:
    """Submits messages to the configured SMTP relay.

    Every call to ``send`` opens its own SMTP session, authenticates,
    submits one message and quits. Nothing is shared between calls except
    the read-only configuration.
    """

    def __init__(self, config: EmailConfig) -> None:
        self.config = config
        self.tls_mode = resolve_tls_mode(config.smtp_tls, config.smtp_port)

    def build_message(self, email: ResolvedEmail) -> EmailMessage:
        """Build a single-part plain text message.

        Raises:
            DeliveryError: If a header value cannot be parsed or encoded, or
                the From or To header does not yield a usable address
        """
        message = EmailMessage()
        try:
            message["From"] = email.from_header
            message["To"] = email.to_addr
            message["Subject"] = email.subject
            message["Date"] = formatdate(localtime=True)
            message["Message-ID"] = make_msgid()
            message.set_content(email.body)
        except (ValueError, TypeError, IndexError, HeaderParseError) as e:
            raise DeliveryError(f"Failed to send email: invalid message: {e}")

        # Raises on unusable addresses before any session is opened
        envelope_addresses(message)
        return message

    def tls_options(self) -> dict[str, Any]:
        """Connection options for aiosmtplib derived from the TLS mode."""
        context = create_client_tls_context(self.config.smtp_verify_certs)

        if self.tls_mode == "implicit":
            return {"use_tls": True, "start_tls": False, "tls_context": context}
        if self.tls_mode == "starttls":
            return {"use_tls": False, "start_tls": True, "tls_context": context}
        # Upgrade only if the relay advertises STARTTLS
        return {"use_tls": False, "start_tls": None, "tls_context": context}

    async def _deliver(self, message: EmailMessage) -> None:
        client = aiosmtplib.SMTP(
            hostname=self.config.smtp_server,
            port=self.config.smtp_port,
            timeout=self.config.smtp_timeout,
            **self.tls_options(),
        )

        async with client:
            await client.login(
                self.config.email_account,
                self.config.email_password.get_secret_value(),
            )
            sender, recipients = envelope_addresses(message)
            await client.send_message(message, sender=sender, recipients=recipients)

    async def send(self, email: ResolvedEmail) -> None:
        """Deliver one email to the relay.

        Success means the relay accepted the message, not that it reached
        the recipient's mailbox.

        Args:
            email: Resolved email

        Raises:
            DeliveryError: On connection, TLS, authentication, rejection or
                timeout failures, or if the message has unusable addresses
        """
        start = time.monotonic()
        try:
            message = self.build_message(email)
        except DeliveryError as e:
            self._record_failure(start, str(e))
            raise

        logger.info(
            "Sending email",
            from_addr=email.from_addr,
            to_addr=email.to_addr,
            smtp_server=self.config.smtp_server,
            smtp_port=self.config.smtp_port,
            tls_mode=self.tls_mode,
        )

        try:
            await asyncio.wait_for(
                self._deliver(message),
                timeout=self.config.smtp_timeout,
            )
        except aiosmtplib.SMTPAuthenticationError as e:
            self._record_failure(start, str(e))
            raise DeliveryError(f"Failed to send email: SMTP authentication failed: {e}")
        except asyncio.TimeoutError:
            reason = f"SMTP session timed out after {self.config.smtp_timeout:g}s"
            self._record_failure(start, reason)
            raise DeliveryError(f"Failed to send email: {reason}")
        except (aiosmtplib.SMTPException, OSError, ValueError) as e:
            self._record_failure(start, str(e))
            raise DeliveryError(f"Failed to send email: {e}")

        smtp_session_seconds.labels(status="success").observe(time.monotonic() - start)
        emails_sent_total.labels(status="success").inc()
        logger.info(
            "Email accepted by relay",
            to_addr=email.to_addr,
            message_id=message["Message-ID"],
        )

    def _record_failure(self, start: float, error: str) -> None:
        smtp_session_seconds.labels(status="failed").observe(time.monotonic() - start)
        emails_sent_total.labels(status="failed").inc()
        logger.error(
            "Failed to send email",
            smtp_server=self.config.smtp_server,
            error=error,
        )
