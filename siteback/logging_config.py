from __future__ import annotations

import logging
import os
from pathlib import Path

import watchtower

_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def _resolve_level(raw: str) -> int:
    if raw.isdigit():
        return int(raw)
    level = logging.getLevelName(raw.upper())
    return level if isinstance(level, int) else logging.INFO


def setup_logging() -> None:
    """Configure the root logger from LOG_LEVEL, LOG_FILE and CLOUDWATCH_LOG_GROUP."""
    level = _resolve_level(os.environ.get("LOG_LEVEL", "INFO").strip() or "INFO")
    log_file = os.environ.get("LOG_FILE")

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(level)

    formatter = logging.Formatter(_FORMAT)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(log_path, encoding="utf-8")
    else:
        handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    log_group = os.environ.get("CLOUDWATCH_LOG_GROUP")
    if log_group:
        cloudwatch = watchtower.CloudWatchLogHandler(
            log_group_name=log_group,
            log_stream_name=os.environ.get("CLOUDWATCH_LOG_STREAM", "siteback"),
        )
        cloudwatch.setFormatter(formatter)
        root_logger.addHandler(cloudwatch)
