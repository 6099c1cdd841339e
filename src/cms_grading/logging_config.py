from __future__ import annotations

import logging

import watchtower

from .aws_clients import logs_client
from .config import Settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    """Set the root log level and ship logs to CloudWatch when a log group is configured."""
    level = getattr(logging, settings.log_level, logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    root = logging.getLogger()
    root.setLevel(level)

    if not settings.cloudwatch_log_group:
        return
    if any(isinstance(handler, watchtower.CloudWatchLogHandler) for handler in root.handlers):
        return

    handler = watchtower.CloudWatchLogHandler(
        log_group_name=settings.cloudwatch_log_group,
        boto3_client=logs_client(settings),
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    logger.info(f"CloudWatch logging enabled: {settings.cloudwatch_log_group}")
