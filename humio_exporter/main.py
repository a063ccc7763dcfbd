#!/usr/bin/env python3
"""Main entrypoint for checking a Humio exporter configuration."""

import argparse
import json
import logging
import sys
from os import environ
from pathlib import Path
from typing import Any, TypeVar, cast

import requests
import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler

from humio_exporter import constants
from humio_exporter.config import ConfigValidationError, SanitizedSettings, load_config
from humio_exporter.ingest_client import HumioIngestClient
from humio_exporter.settings import HumioExporterSettings


class Args(argparse.Namespace):
    config: Path | None
    endpoint: str | None
    ingest_token: str | None
    log_level: str
    rich_logs: bool
    print_config_and_exit: bool
    test_message: str | None


logger = logging.getLogger(__name__)

INGEST_TOKEN_ENV = "HUMIO_INGEST_TOKEN"


def parse_args() -> Args:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Validate a Humio exporter configuration and derive its ingest settings",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "--config",
        type=Path,
        help="Path to YAML configuration file",
    )

    # Configuration overrides (optional when using config file)
    parser.add_argument(
        "--endpoint",
        help="Base URL of the Humio instance",
    )

    parser.add_argument(
        "--ingest-token",
        help=f"Ingest token for the Humio repository. Also accepted in the {INGEST_TOKEN_ENV} envvar.",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Set the logging level",
    )

    parser.add_argument(
        "--rich-logs",
        action="store_true",
        help="Enable rich colored logging output",
    )

    parser.add_argument(
        "--print-config-and-exit",
        action="store_true",
        help="Print the resolved configuration as JSON (secrets redacted) and exit",
    )

    parser.add_argument(
        "--test-message",
        help="Send a single raw message to the unstructured ingest API",
    )

    return cast(Args, parser.parse_args())


def configure_logging(log_level: str, use_rich: bool = False) -> None:
    """Configure logging with optional rich formatting.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        use_rich: Whether to use rich colored logging
    """
    if use_rich:
        logging.basicConfig(
            level=getattr(logging, log_level),
            format="%(message)s",
            datefmt="[%X]",
            handlers=[
                RichHandler(
                    console=Console(),
                    show_path=True,
                    show_time=True,
                    show_level=True,
                    markup=True,
                    rich_tracebacks=True,
                )
            ],
        )
    else:
        logging.basicConfig(
            level=getattr(logging, log_level),
            format="%(asctime)s [%(name)s:%(filename)s:%(lineno)d] %(levelname)s: %(message)s",
        )

    # silence urllib3 debug posts
    logging.getLogger("urllib3").setLevel(logging.WARNING)


T = TypeVar("T")


def first_not_none(*values: T | None) -> T | None:
    for v in values:
        if v is not None:
            return v
    return None


def load_settings(
    config_dict: Any,
    endpoint: str | None = None,
    ingest_token: str | None = None,
) -> HumioExporterSettings:
    """Build exporter settings from a loaded configuration file.

    Args:
        config_dict: Content of the YAML configuration file
        endpoint: Endpoint overriding the one from the file
        ingest_token: Ingest token overriding the one from the file

    Raises:
        ConfigValidationError: If the configuration is not a mapping.
        pydantic.ValidationError: If a setting has the wrong type.
    """
    if config_dict is None:
        config_dict = {}
    if not isinstance(config_dict, dict):
        raise ConfigValidationError("configuration must be a mapping")

    data = dict(config_dict)
    if ingest_token is not None:
        data["ingest_token"] = ingest_token
    if endpoint is not None:
        http_client = data.get("http_client") or {}
        if isinstance(http_client, dict):
            data.pop("endpoint", None)
            data["http_client"] = {**http_client, "endpoint": endpoint}
        else:
            data["endpoint"] = endpoint

    return HumioExporterSettings.model_validate(data)


def redact(config: SanitizedSettings) -> dict[str, Any]:
    """Dump sanitized settings with the ingest token masked."""
    dumped = config.model_dump()
    settings = dumped["settings"]
    settings["ingest_token"] = constants.REDACTED
    settings["http_client"]["headers"][constants.AUTHORIZATION_HEADER] = (
        constants.REDACTED
    )
    return dumped


SECRET_FIELDS = ("ingest_token", "headers")


def format_validation_error(error: ValidationError) -> str:
    """Describe each invalid field, without echoing secret values."""
    lines = []
    for err in error.errors():
        loc = [str(part) for part in err["loc"]]
        got = (
            constants.REDACTED
            if any(part in SECRET_FIELDS for part in loc)
            else err["input"]
        )
        lines.append(f"{'.'.join(loc)}: {err['msg']} (got {got})")
    return "\n".join(lines)


def build_test_payload(message: str, config: SanitizedSettings) -> list[dict[str, Any]]:
    entry: dict[str, Any] = {
        "fields": dict(config.settings.tags),
        "messages": [message],
    }
    if config.settings.logs.log_parser:
        entry["type"] = config.settings.logs.log_parser
    return [entry]


def main() -> int:
    """Main function."""
    args = parse_args()

    configure_logging(args.log_level, args.rich_logs)

    try:
        config_dict: Any = {}

        if args.config:
            logger.info("Loading configuration from %s", args.config)
            with open(args.config, "r", encoding="utf-8") as f:
                config_dict = yaml.safe_load(f)

        settings = load_settings(
            config_dict,
            endpoint=args.endpoint,
            ingest_token=first_not_none(
                args.ingest_token, environ.get(INGEST_TOKEN_ENV)
            ),
        )
        config = load_config(settings)

        if args.print_config_and_exit:
            logger.info("Printing resolved configuration")
            print(json.dumps(redact(config), indent=2, sort_keys=True))
            return 0

        if args.test_message is not None:
            with HumioIngestClient(config) as client:
                client.send_unstructured(build_test_payload(args.test_message, config))
            logger.info("Test message sent to %s", config.unstructured_endpoint)
        else:
            logger.info("Configuration is valid")

    except ValidationError as e:
        logger.error("Invalid config\n%s", format_validation_error(e))
        return 1
    except ConfigValidationError as e:
        logger.error("Invalid config: %s", e)
        return 1
    # RequestException derives from OSError, so it is handled first
    except requests.RequestException as e:
        logger.error("Sending test message failed: %s", e)
        return 1
    except (OSError, yaml.YAMLError) as e:
        logger.error("Unable to read configuration: %s", e)
        return 1
    except KeyboardInterrupt:
        logger.info("Stopped by user")
        return 0

    return 0


if __name__ == "__main__":
    sys.exit(main())
