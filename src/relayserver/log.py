"""
Logging setup for the relay.

Every module logs through ``logging.getLogger(__name__)``, so the whole
server lives under the ``relayserver`` namespace:

    logging.getLogger("relayserver").setLevel(logging.DEBUG)
    logging.getLogger("relayserver.handlers.relay").addHandler(file_handler)

Two output formats are supported:

    text:  2026-01-15 12:30:45 [INFO] relayserver.handlers.accept: new connection ...
    json:  {"timestamp": "...", "level": "INFO", "logger": "...", "message": "..."}
"""

import json
import logging


TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class JsonFormatter(logging.Formatter):
    """Render each record as one JSON object per line."""

    def __init__(self):
        super().__init__(datefmt=DATE_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def configure_logging(level: str = "INFO", log_format: str = "text") -> None:
    """
    Configure the root logger and the ``relayserver`` logger.

    Args:
        level: Logging level name (DEBUG, INFO, ...).
        log_format: "text" or "json".
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    if log_format == "json":
        handler = logging.StreamHandler()
        handler.setFormatter(JsonFormatter())
        logging.basicConfig(level=numeric_level, handlers=[handler])
    else:
        logging.basicConfig(
            level=numeric_level,
            format=TEXT_FORMAT,
            datefmt=DATE_FORMAT,
        )

    logging.getLogger("relayserver").setLevel(numeric_level)
