"""Logging setup for JobScout.

``get_logger`` hands out named loggers and installs the console and daily-file
handlers on first use. Every logger it returns carries ``RedactSecrets``, so API
keys, SMTP passwords and bearer tokens never reach a log line, even when they
end up inside an exception message or a traceback.
"""
from __future__ import annotations

import logging
import os
import re
import sys
from datetime import datetime
from pathlib import Path

_LOG_DIR = Path(__file__).resolve().parent.parent / "logs"
_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s"
_DATE_FMT = "%Y-%m-%d %H:%M:%S"

MASK = "***"
SECRET_ENV_VARS = (
    "GROQ_API_KEY",
    "RAPIDAPI_KEY",
    "RESEND_API_KEY",
    "SMTP_PASSWORD",
    "JOBSCOUT_SERVICE_TOKEN",
    "JOBSCOUT_USER_TOKEN_SECRET",
)
_BEARER_RE = re.compile(r"(Bearer\s+)[^\s'\",;]+", re.IGNORECASE)
# short values would mask ordinary words
_MIN_SECRET_LEN = 6
# chatty HTTP clients log request details at DEBUG
_QUIET_LOGGERS = ("httpx", "httpcore", "openai", "urllib3")

_configured = False


def redact(text: str) -> str:
    """Mask bearer tokens and the current values of the secret env vars in *text*."""
    for name in SECRET_ENV_VARS:
        value = os.environ.get(name, "")
        if len(value) >= _MIN_SECRET_LEN:
            text = text.replace(value, MASK)
    return _BEARER_RE.sub(r"\1" + MASK, text)


class RedactSecrets(logging.Filter):
    """Rewrites the record's message (and traceback text) with secrets masked."""

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            message = str(record.msg)
        record.msg = redact(message)
        record.args = ()
        if record.exc_info and not record.exc_text:
            record.exc_text = logging.Formatter().formatException(record.exc_info)
        if record.exc_text:
            record.exc_text = redact(record.exc_text)
        return True


_redactor = RedactSecrets()


def get_logger(name: str) -> logging.Logger:
    """Return a named logger with secret redaction attached."""
    global _configured
    if not _configured:
        _configure()
        _configured = True
    logger = logging.getLogger(name)
    if _redactor not in logger.filters:
        logger.addFilter(_redactor)
    return logger


def _configure() -> None:
    level = getattr(logging, os.environ.get("LOG_LEVEL", "INFO").upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(level)
    for noisy in _QUIET_LOGGERS:
        logging.getLogger(noisy).setLevel(max(level, logging.WARNING))

    # pytest and uvicorn install their own handlers
    if root.handlers:
        return
    for handler in _build_handlers(level):
        handler.addFilter(_redactor)
        handler.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATE_FMT))
        root.addHandler(handler)


def _build_handlers(level: int) -> list[logging.Handler]:
    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    handlers: list[logging.Handler] = [console]
    try:
        _LOG_DIR.mkdir(parents=True, exist_ok=True)
        daily = logging.FileHandler(_LOG_DIR / f"jobscout_{datetime.now():%Y-%m-%d}.log", encoding="utf-8")
    except OSError:
        # read-only deployments still get console output
        return handlers
    daily.setLevel(logging.DEBUG)
    handlers.append(daily)
    return handlers
