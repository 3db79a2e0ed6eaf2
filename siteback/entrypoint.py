from __future__ import annotations

import logging
import sys

import uvicorn

from .config import ConfigError, load_settings
from .index import create_app
from .logging_config import setup_logging

logger = logging.getLogger(__name__)


def main() -> None:
    setup_logging()
    try:
        settings = load_settings()
    except ConfigError as e:
        logger.critical(f"Failed to start server: {e}")
        sys.exit(1)

    app = create_app(settings)
    logger.info(f"siteback API listening on http://{settings.host}:{settings.port}")
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)
