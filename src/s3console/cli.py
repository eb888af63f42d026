"""Command-line entry point: ``s3console [--config PATH] [overrides...]``."""

import argparse
import logging
import sys
from pathlib import Path

import uvicorn
import yaml
from pydantic import ValidationError

from s3console.config import ConsoleConfig, load_config
from s3console.logging_config import configure_logging
from s3console.server import create_app

logger = logging.getLogger("s3console")

# (argument dest, config section, config field)
_OVERRIDES = (
    ("host", "server", "host"),
    ("port", "server", "port"),
    ("log_level", "server", "log_level"),
    ("log_format", "server", "log_format"),
    ("shutdown_timeout", "server", "shutdown_timeout"),
    ("auth_url", "auth", "url"),
    ("store_endpoint", "store", "endpoint"),
    ("store_region", "store", "region"),
)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments. Every override defaults to ``None``."""
    parser = argparse.ArgumentParser(
        prog="s3console",
        description="Web console API for an S3-compatible object store",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=Path("s3console.yaml"),
        help="YAML configuration file (default: s3console.yaml)",
    )
    parser.add_argument(
        "--check-config",
        action="store_true",
        help="Validate the configuration, print a summary and exit",
    )

    server = parser.add_argument_group("server overrides")
    server.add_argument("--host", default=None)
    server.add_argument("--port", type=int, default=None)
    server.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
    )
    server.add_argument("--log-format", default=None, choices=["text", "json"])
    server.add_argument(
        "--shutdown-timeout",
        type=int,
        default=None,
        help="Seconds to let in-flight downloads finish on shutdown",
    )

    backends = parser.add_argument_group("backend overrides")
    backends.add_argument("--auth-url", default=None, help="Auth node base URL")
    backends.add_argument("--store-endpoint", default=None, help="Object store endpoint URL")
    backends.add_argument("--store-region", default=None, help="Object store region name")
    return parser.parse_args(argv)


def apply_overrides(config: ConsoleConfig, args: argparse.Namespace) -> ConsoleConfig:
    """Copy every CLI override that was given onto ``config`` and revalidate."""
    for dest, section, field in _OVERRIDES:
        value = getattr(args, dest, None)
        if value is not None:
            setattr(getattr(config, section), field, value)
    return ConsoleConfig.model_validate(config.model_dump())


def describe(config: ConsoleConfig) -> str:
    """One-line summary of where the console listens and what it talks to."""
    return (
        f"listen={config.server.host}:{config.server.port} "
        f"auth={config.auth.mode}:{config.auth.url} "
        f"store={config.store.endpoint} region={config.store.region}"
    )


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)

    logging.basicConfig(level=logging.INFO, stream=sys.stderr)

    try:
        config = apply_overrides(load_config(args.config), args)
    except FileNotFoundError:
        logger.error("Config file not found: %s", args.config)
        sys.exit(1)
    except (OSError, yaml.YAMLError, ValidationError) as exc:
        logger.error("Failed to load config %s: %s", args.config, exc)
        sys.exit(1)

    if args.check_config:
        print(describe(config))
        return

    configure_logging(level=config.server.log_level, fmt=config.server.log_format)
    logger.info("Starting s3console: %s", describe(config))

    uvicorn.run(
        create_app(config),
        host=config.server.host,
        port=config.server.port,
        log_level=config.server.log_level.lower(),
        timeout_graceful_shutdown=config.server.shutdown_timeout,
    )


if __name__ == "__main__":
    main()
