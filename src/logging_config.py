"""Root logger setup for the IQ360 entrypoints.

``src.main`` and ``web.app`` call ``setup_logging()`` before building a
session machine; every other module just asks for
``logging.getLogger(__name__)``.

Environment:
    LOG_LEVEL   overrides the entrypoint's default level.
    LOG_FORMAT  ``json`` for one record per line, anything else for text.
"""

from __future__ import annotations

import json
import logging
import os
import sys

_TEXT_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s"
_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

# Chat-model and HTTP client chatter stays at WARNING.
_NOISY_LOGGERS = ("httpx", "httpcore", "openai", "langchain", "urllib3")


class _JsonFormatter(logging.Formatter):
    # Level titles and answers come from the model and the player, so the
    # message is escaped with json.dumps rather than spliced into a template.
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "time": self.formatTime(record, _DATE_FORMAT),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def setup_logging(default_level: str = "INFO") -> None:
    """Point the root logger at stderr in text or JSON form.

    The CLI passes ``default_level="WARNING"`` so log lines stay out of the
    game text unless ``LOG_LEVEL`` asks for them.
    """
    level_name = os.getenv("LOG_LEVEL", default_level).upper()
    handler = logging.StreamHandler(sys.stderr)
    if os.getenv("LOG_FORMAT", "text").lower() == "json":
        handler.setFormatter(_JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(_TEXT_FORMAT, _DATE_FORMAT))

    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        handlers=[handler],
        force=True,
    )

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
