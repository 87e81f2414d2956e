"""Pytest configuration and shared fixtures."""

import socket
import ssl
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from aiosmtpd.controller import Controller
from aiosmtpd.smtp import AuthResult, LoginPassword
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

from mail_relay.config import AppConfig, EmailConfig


API_KEY = "test-api-key"
SMTP_USERNAME = "relay@x.com"
SMTP_PASSWORD = "s3cret-password"


@pytest.fixture
def config_data():
    """Raw configuration as it appears in app_config.json."""
    return {
        "email": {
            "smtp_server": "smtp.example.com",
            "smtp_port": 587,
            "email_account": SMTP_USERNAME,
            "email_password": SMTP_PASSWORD,
            "email_from": "a@x.com",
            "email_to": "b@x.com",
            "sender_name": "Bot",
        },
        "server": {
            "api_key": API_KEY,
        },
    }


@pytest.fixture
def app_config(config_data):
    """Loaded application configuration."""
    return AppConfig(**config_data)


class RecordingDispatcher:
    """Dispatcher double that records every email instead of sending it."""

    def __init__(self, error=None):
        self.sent = []
        self.error = error

    async def send(self, email):
        self.sent.append(email)
        if self.error is not None:
            raise self.error


@pytest.fixture
def recording_dispatcher():
    return RecordingDispatcher()


def free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


class RecordingHandler:
    """aiosmtpd handler keeping every accepted envelope."""

    def __init__(self):
        self.envelopes = []

    async def handle_DATA(self, server, session, envelope):
        self.envelopes.append(envelope)
        return "250 Message accepted for delivery"


class StaticAuthenticator:
    """aiosmtpd authenticator accepting a single username/password pair."""

    def __init__(self, username: str, password: str):
        self.username = username.encode()
        self.password = password.encode()

    def __call__(self, server, session, envelope, mechanism, auth_data):
        if (
            isinstance(auth_data, LoginPassword)
            and auth_data.login == self.username
            and auth_data.password == self.password
        ):
            return AuthResult(success=True)
        return AuthResult(success=False, handled=False)


def generate_self_signed_cert(hostname: str, cert_path: Path, key_path: Path) -> None:
    """Write a self-signed certificate and key for a local test relay."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)

    subject = issuer = x509.Name([
        x509.NameAttribute(NameOID.ORGANIZATION_NAME, "Mail Relay Tests"),
        x509.NameAttribute(NameOID.COMMON_NAME, hostname),
    ])

    now = datetime.now(timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(issuer)
        .public_key(private_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(minutes=5))
        .not_valid_after(now + timedelta(days=1))
        .add_extension(
            x509.SubjectAlternativeName([x509.DNSName(hostname)]),
            critical=False,
        )
        .sign(private_key, hashes.SHA256())
    )

    cert_path.write_bytes(cert.public_bytes(serialization.Encoding.PEM))
    key_path.write_bytes(
        private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.TraditionalOpenSSL,
            encryption_algorithm=serialization.NoEncryption(),
        )
    )


@pytest.fixture
def smtp_relay():
    """Plaintext SMTP relay with AUTH, listening on a free local port."""
    handler = RecordingHandler()
    controller = Controller(
        handler,
        hostname="127.0.0.1",
        port=free_port(),
        authenticator=StaticAuthenticator(SMTP_USERNAME, SMTP_PASSWORD),
        auth_require_tls=False,
    )
    controller.start()
    yield controller
    controller.stop()


@pytest.fixture
def starttls_relay(tmp_path):
    """SMTP relay that requires STARTTLS before AUTH, using a self-signed cert."""
    cert_path = tmp_path / "relay.crt"
    key_path = tmp_path / "relay.key"
    generate_self_signed_cert("localhost", cert_path, key_path)

    tls_context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    tls_context.load_cert_chain(certfile=str(cert_path), keyfile=str(key_path))

    handler = RecordingHandler()
    controller = Controller(
        handler,
        hostname="127.0.0.1",
        port=free_port(),
        tls_context=tls_context,
        require_starttls=True,
        authenticator=StaticAuthenticator(SMTP_USERNAME, SMTP_PASSWORD),
        auth_require_tls=True,
    )
    controller.start()
    yield controller
    controller.stop()


def relay_email_config(port: int, **overrides) -> EmailConfig:
    """EmailConfig pointing at a local test relay."""
    values = {
        "smtp_server": "127.0.0.1",
        "smtp_port": port,
        "email_account": SMTP_USERNAME,
        "email_password": SMTP_PASSWORD,
        "email_from": "a@x.com",
        "email_to": "b@x.com",
        "sender_name": "Bot",
        "smtp_timeout": 5,
    }
    values.update(overrides)
    return EmailConfig(**values)
