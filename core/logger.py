"""
core/logger.py -- Process-wide logging setup.

setup_logging() is called once from the app assembly (api/main.py) and from
the CLI. Everything else just calls logging.getLogger("sso.<area>").

Environment profiles:
  local -- DEBUG, human-readable text lines
  dev   -- DEBUG, one JSON object per line (python-json-logger)
  prod  -- INFO,  one JSON object per line (python-json-logger)

Fields passed through `extra=` (op, user_id, app_id, ...) are rendered in both
formats so operation logs stay greppable by key.
"""

from __future__ import annotations

import logging
import sys

from pythonjsonlogger.json import JsonFormatter

# Attributes every LogRecord has. Anything else on the record came from extra=.
_RESERVED = set(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}

_TEXT_FORMAT = "%(asctime)s %(levelname)-5s %(name)s %(message)s"
_JSON_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
_JSON_RENAMES = {"asctime": "time", "levelname": "level", "name": "logger", "message": "msg"}
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class TextFormatter(logging.Formatter):
    """Plain text with extra fields appended as key=value pairs."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        extras = {k: v for k, v in vars(record).items() if k not in _RESERVED}
        if extras:
            line += " " + " ".join(f"{k}={v}" for k, v in extras.items())
        return line


def json_formatter() -> JsonFormatter:
    """One JSON object per record: time, level, logger, msg, then extra fields."""
    return JsonFormatter(
        _JSON_FORMAT,
        datefmt=_DATE_FORMAT,
        rename_fields=_JSON_RENAMES,
        json_default=str,
    )


def setup_logging(env: str = "local") -> None:
    """Configure the root logger for the given environment profile.

    Unknown env values fall back to the local profile.
    """
    handler = logging.StreamHandler(sys.stdout)
    if env in ("dev", "prod"):
        handler.setFormatter(json_formatter())
    else:
        handler.setFormatter(TextFormatter(_TEXT_FORMAT, datefmt=_DATE_FORMAT))

    level = logging.INFO if env == "prod" else logging.DEBUG
    logging.basicConfig(level=level, handlers=[handler], force=True)
