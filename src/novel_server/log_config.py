"""
Process-wide logging setup driven by ``config.logging``.

Formats:
    simple:   "LEVEL message"
    detailed: timestamp, logger name, level and message
    json:     one JSON object per line, for log shippers
"""

import json
import logging

from novel_server.config import config

_FORMATS = {
    "simple": "%(levelname)s %(message)s",
    "detailed": "%(asctime)s %(name)s %(levelname)s %(message)s",
}


class JsonFormatter(logging.Formatter):
    """Render each record as a single-line JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "time": self.formatTime(record),
            "logger": record.name,
            "level": record.levelname,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def configure_logging(level: str | None = None, fmt: str | None = None) -> None:
    """Install a single stream handler on the root logger."""
    level = (level or config.logging.level).upper()
    fmt = fmt or config.logging.format

    handler = logging.StreamHandler()
    if fmt == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(_FORMATS.get(fmt, _FORMATS["detailed"])))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level, logging.INFO))
