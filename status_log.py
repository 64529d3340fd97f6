"""
======================================================================
            Spotify Status on Slack - Structured Logging
======================================================================

  Project: Spotify Status on Slack
  Author: J. Apps (JohnV2002 / Sodakiller1)
  Version: 1.0.0

----------------------------------------------------------------------
 Features:
 ---------------------------------------------------------------------
  • One shared logger for the status runner and the config UI.
  • Log lines: "<timestamp> <LEVEL> <message> <json meta>".
  • Slack tokens are redacted while the meta is serialized, so no
    call site has to remember it.

----------------------------------------------------------------------

  Copyright (c) 2026 J. Apps
  Licensed under the MIT License.

======================================================================
"""

import json
import logging
import re
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

LOGGER_NAME = "spotify_status"
TOKEN_PATTERN = re.compile(r"xox[pbar]-[A-Za-z0-9-]+")
TOKEN_REPLACEMENT = "xox*-REDACTED"

# logging calls it WARNING, the log files have always said WARN
LEVEL_NAMES = {
    logging.DEBUG: "DEBUG",
    logging.INFO: "INFO",
    logging.WARNING: "WARN",
    logging.ERROR: "ERROR",
    logging.CRITICAL: "ERROR",
}
LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}

logger = logging.getLogger(LOGGER_NAME)


def redact_token(text: str) -> str:
    """Replace anything that looks like a Slack token."""
    return TOKEN_PATTERN.sub(TOKEN_REPLACEMENT, text)


def _redact(value: Any) -> Any:
    if isinstance(value, str):
        return redact_token(value)
    if isinstance(value, dict):
        return {str(k): _redact(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_redact(v) for v in value]
    return value


class RedactingFormatter(logging.Formatter):
    """
    Formats records as "<iso timestamp> <LEVEL> <message> <meta>".

    The meta dict travels on the record (``extra={"meta": {...}}``) and is
    serialized here. Every string inside it, and the message itself, goes
    through ``redact_token`` first.
    """

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(timespec="milliseconds")
        stamp = stamp.replace("+00:00", "Z")
        level = LEVEL_NAMES.get(record.levelno, record.levelname)
        line = f"{stamp} {level} {redact_token(record.getMessage())}"

        meta = getattr(record, "meta", None)
        if meta:
            line = f"{line} {json.dumps(_redact(meta), ensure_ascii=False, default=str)}"
        if record.exc_info:
            line = f"{line}\n{redact_token(self.formatException(record.exc_info))}"
        return line


def setup_logging(debug: bool = False, stream=None) -> logging.Logger:
    """
    Attach a single stdout handler to the project logger.

    The scheduler redirects stdout into the log file, so there is no file
    handler here. Calling it twice replaces the handler instead of stacking.
    """
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(RedactingFormatter())

    for old in list(logger.handlers):
        logger.removeHandler(old)
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if debug else logging.INFO)
    logger.propagate = False
    return logger


def log(level: str, msg: str, meta: Optional[Dict[str, Any]] = None) -> None:
    """Log ``msg`` at ``level`` (DEBUG/INFO/WARN/ERROR) with optional meta."""
    logger.log(LEVELS.get(level.upper(), logging.INFO), msg, extra={"meta": meta or {}})
