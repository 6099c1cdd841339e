from __future__ import annotations

import logging

from .app import build_services, create_app
from .aws_clients import tables
from .config import Settings
from .logging_config import configure_logging

logger = logging.getLogger(__name__)

settings = Settings.from_env()
configure_logging(settings)

if not settings.grader_callback_token:
    logger.warning("GRADER_CALLBACK_TOKEN is not set; grading callbacks will be rejected.")

app = create_app(build_services(settings, tables(settings)))
