"""JSON-lines logging.

Every notionbuf logger writes one JSON object per record to stderr and does
not propagate, so an embedding editor's own log setup is left alone.
Structured data rides along in ``extra_fields``::

    log = get_logger("notionbuf.mapping")
    log.debug("block deleted", extra={"extra_fields": {"block_id": "b1"}})

produces::

    {"ts": "...+00:00", "level": "DEBUG", "logger": "notionbuf.mapping",
     "message": "block deleted", "block_id": "b1"}
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, TextIO


class StructuredFormatter(logging.Formatter):
    """Render a record as a single JSON line.

    ``ts``, ``level``, ``logger`` and ``message`` are always present;
    ``extra_fields`` are flattened into the same object, followed by
    ``exception`` and ``stack_info`` when the record carries them.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(getattr(record, "extra_fields", None) or {})
        if record.exc_info and record.exc_info[1] is not None:
            payload["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack_info"] = self.formatStack(record.stack_info)
        return json.dumps(payload, default=str)


_handled: set[str] = set()


def _level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    return logging.getLevelName(level.upper())


def get_logger(
    name: str = "notionbuf",
    *,
    level: int | str = logging.DEBUG,
    stream: TextIO | None = None,
) -> logging.Logger:
    """Return the logger *name*, attaching a JSON handler on first use.

    Parameters
    ----------
    name:
        Dotted logger name; modules use ``notionbuf.<area>``.
    level:
        Threshold as a number or a level name in any case.  Ignored once
        the logger has been set up.
    stream:
        Handler target, ``sys.stderr`` when omitted.
    """
    logger = logging.getLogger(name)
    if name in _handled:
        return logger

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(StructuredFormatter())
    logger.addHandler(handler)
    logger.setLevel(_level(level))
    logger.propagate = False
    _handled.add(name)
    return logger
