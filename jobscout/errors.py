"""Exception taxonomy shared by the scan and digest pipelines."""
from __future__ import annotations

from typing import Any


class JobScoutError(Exception):
    """Base class for every error raised on purpose by jobscout."""


class RateLimited(JobScoutError):
    """The remote side signalled HTTP 429 / quota exhaustion. Retryable."""


class UpstreamUnavailable(JobScoutError):
    """A single job source is down or returned garbage."""


class InvalidResponse(JobScoutError):
    """The LLM returned output that could not be decoded."""


class NoRecipientConfigured(JobScoutError):
    def __init__(self, message: str = "No digest email configured") -> None:
        super().__init__(message)


class AuthRequired(JobScoutError):
    def __init__(self, message: str = "Missing Authorization header") -> None:
        super().__init__(message)


class Unauthorized(JobScoutError):
    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class PersistenceFailure(JobScoutError):
    """A read or write against the match/settings store failed."""


class InvalidTransition(JobScoutError):
    """Illegal job match status change (e.g. dismissed -> accepted)."""


class EmailSendError(JobScoutError):
    def __init__(self, message: str, status: int | None = None, details: Any = None) -> None:
        super().__init__(message)
        self.status = status
        self.details = details


RATE_LIMIT_MESSAGE = "Scanner hit API limits. Retrying later is recommended."
SCAN_FAILED_MESSAGE = "Scanning failed. Try again."


class ScanFailed(JobScoutError):
    """A scan aborted; nothing from it was persisted."""

    def __init__(self, rate_limited: bool) -> None:
        self.rate_limited = rate_limited
        self.user_message = RATE_LIMIT_MESSAGE if rate_limited else SCAN_FAILED_MESSAGE
        super().__init__(self.user_message)


def _status_of(exc: BaseException) -> Any:
    for attr in ("status_code", "status"):
        value = getattr(exc, attr, None)
        if value is not None:
            return value
    response = getattr(exc, "response", None)
    return getattr(response, "status_code", None)


def is_rate_limited(exc: BaseException) -> bool:
    """True when *exc* signals rate limiting (RateLimited, a 429 status, or '429' in the message)."""
    if isinstance(exc, RateLimited):
        return True
    if isinstance(exc, ScanFailed):
        return exc.rate_limited
    status = _status_of(exc)
    if status == 429 or str(status) == "429":
        return True
    return "429" in str(exc)
