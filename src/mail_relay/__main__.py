"""Entry point for the Mail Relay application."""

import argparse
import asyncio
import sys
from typing import Optional, Sequence

import structlog
from pydantic import ValidationError as PydanticValidationError

from mail_relay import __version__
from mail_relay.config import (
    AppConfig,
    ServerConfig,
    format_validation_error,
    load_config,
    resolve_config_path,
)
from mail_relay.errors import ConfigError
from mail_relay.logging import setup_logging


logger = structlog.get_logger()


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command line options."""
    parser = argparse.ArgumentParser(
        prog="mail-relay",
        description="Forward authenticated HTTP requests as email via SMTP.",
    )
    parser.add_argument(
        "--config",
        help="Path to the JSON configuration file "
        "(default: $MAILRELAY_CONFIG or ./app_config.json)",
    )
    parser.add_argument("--host", help="Override server.server_host")
    parser.add_argument("--port", type=int, help="Override server.server_port")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


def apply_overrides(config: AppConfig, args: argparse.Namespace) -> AppConfig:
    """Return ``config`` with bind address overrides from the command line.

    Raises:
        ConfigError: If an override fails ServerConfig validation
    """
    updates = {}
    if args.host:
        updates["server_host"] = args.host
    if args.port is not None:
        updates["server_port"] = args.port
    if not updates:
        return config
    try:
        server = ServerConfig.model_validate({**config.server.model_dump(), **updates})
    except PydanticValidationError as e:
        raise ConfigError(f"Invalid command line override: {format_validation_error(e)}")
    return config.model_copy(update={"server": server})


async def main(config: AppConfig) -> None:
    """Serve the relay until uvicorn receives a shutdown signal."""
    from mail_relay.http.server import create_http_server

    logger.info(
        "Starting Mail Relay",
        version=__version__,
        host=config.server.server_host,
        port=config.server.server_port,
        smtp_server=config.email.smtp_server,
        smtp_port=config.email.smtp_port,
    )

    server = create_http_server(config)
    await server.serve()

    logger.info("Mail Relay stopped")


def run(argv: Optional[Sequence[str]] = None) -> None:
    """Load configuration, configure logging and run the server."""
    args = parse_args(argv)

    try:
        config = apply_overrides(load_config(args.config), args)
    except ConfigError as e:
        setup_logging()
        logger.error(
            "Failed to load configuration",
            path=str(resolve_config_path(args.config)),
            error=str(e),
        )
        sys.exit(1)

    setup_logging(config.log_level, config.log_format)

    try:
        asyncio.run(main(config))
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
    except Exception as e:
        logger.error("Fatal error", error=str(e), exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    run()
