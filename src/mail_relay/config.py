"""Configuration management for Mail Relay."""

import json
import os
from pathlib import Path
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, SecretStr
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from mail_relay.errors import ConfigError


DEFAULT_CONFIG_PATH = Path("app_config.json")
CONFIG_PATH_ENV = "MAILRELAY_CONFIG"


class EmailConfig(BaseModel):
    """SMTP relay credentials and message defaults."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    smtp_server: str = Field(min_length=1, description="SMTP relay hostname")
    smtp_port: int = Field(ge=1, le=65535, description="SMTP relay port")
    email_account: str = Field(description="SMTP AUTH username")
    email_password: SecretStr = Field(description="SMTP AUTH password")
    email_from: str = Field(description="Default sender address")
    email_to: str = Field(description="Default recipient address")
    sender_name: str = Field(description="Default sender display name")

    smtp_tls: Literal["auto", "starttls", "implicit", "opportunistic"] = Field(
        default="auto",
        description="Transport security; auto picks by port (465 implicit, 587 starttls)",
    )
    smtp_verify_certs: bool = Field(
        default=True,
        description="Verify the relay's TLS certificate",
    )
    smtp_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Upper bound for one SMTP session in seconds",
    )


class ServerConfig(BaseModel):
    """HTTP bind settings and the shared API secret."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    api_key: SecretStr = Field(description="Shared secret expected in X-API-Key")
    server_host: str = Field(default="0.0.0.0", description="HTTP bind address")
    server_port: int = Field(default=3000, ge=1, le=65535, description="HTTP bind port")


class AppConfig(BaseSettings):
    """Application configuration.

    ``email`` and ``server`` come from the JSON configuration file. Logging
    settings may also be set through ``MAILRELAY_LOG_LEVEL`` and
    ``MAILRELAY_LOG_FORMAT``.
    """

    model_config = SettingsConfigDict(
        env_prefix="MAILRELAY_",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    email: EmailConfig
    server: ServerConfig

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: Literal["json", "console"] = Field(
        default="json",
        description="Log format (json or console)",
    )


def format_validation_error(error: PydanticValidationError) -> str:
    """Flatten pydantic errors into ``field.path: message`` pairs."""
    problems = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "<root>"
        problems.append(f"{location}: {item['msg']}")
    return "; ".join(problems)


def resolve_config_path(path: Optional[Union[str, Path]] = None) -> Path:
    """Return the configuration file path.

    Precedence: explicit argument, ``MAILRELAY_CONFIG``, ``app_config.json``.
    """
    if path:
        return Path(path)
    env_path = os.environ.get(CONFIG_PATH_ENV)
    if env_path:
        return Path(env_path)
    return DEFAULT_CONFIG_PATH


def load_config(path: Optional[Union[str, Path]] = None) -> AppConfig:
    """Load and validate the JSON configuration file.

    Args:
        path: Configuration file path (see ``resolve_config_path``)

    Returns:
        Frozen application configuration

    Raises:
        ConfigError: If the file is missing, unreadable, not valid JSON,
            or lacks required fields
    """
    config_path = resolve_config_path(path)

    try:
        raw = config_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ConfigError(f"Configuration file not found: {config_path}")
    except OSError as e:
        raise ConfigError(f"Unable to read configuration file {config_path}: {e}")

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Configuration file {config_path} is not valid JSON: {e}")

    if not isinstance(data, dict):
        raise ConfigError(f"Configuration file {config_path} must contain a JSON object")

    try:
        return AppConfig(**data)
    except PydanticValidationError as e:
        raise ConfigError(
            f"Invalid configuration in {config_path}: {format_validation_error(e)}"
        )
