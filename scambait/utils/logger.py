"""Logging setup shared by the webhooks, the dashboard API and the scripts."""

import logging
import sys

from config.settings import settings

# Client libraries that log every HTTP request at INFO
_NOISY_LOGGERS = ("botocore", "boto3", "urllib3", "httpx", "twilio.http_client")


def _configure_logging() -> None:
    """Configure root logger once."""
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


_configure_logging()


def get_logger(name: str) -> logging.Logger:
    """Return a logger with preconfigured settings."""
    return logging.getLogger(name)
