"""Error taxonomy for the data-access core.

Reads degrade (stale cache or empty), writes propagate. Only the transient
upstream failures below are ever retried.
"""
from typing import Optional

from sqlalchemy.exc import (
    DataError,
    DisconnectionError,
    IntegrityError,
    InterfaceError,
    OperationalError,
    ProgrammingError,
    TimeoutError as PoolTimeoutError,
)

_RATE_LIMIT_MARKERS = ("Quota exceeded", "Too Many Requests")

# Transient database errors worth another attempt
RETRIABLE_DB_EXCEPTIONS = (
    OperationalError,
    DisconnectionError,
    InterfaceError,
    PoolTimeoutError,
)

# Fail fast: the request itself is wrong
NON_RETRIABLE_DB_EXCEPTIONS = (
    IntegrityError,
    ProgrammingError,
    DataError,
)


class DataCoreError(Exception):
    """Base class for every error raised by the data-access core."""


class UpstreamError(DataCoreError):
    """A backing store rejected or failed a call."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status

    @property
    def message(self) -> str:
        return self.args[0] if self.args else ""


class TransientUpstreamError(UpstreamError):
    """Rate limited or server-side failure; safe to retry."""


class FatalUpstreamError(UpstreamError):
    """Malformed request, auth failure or similar; never retried."""


class ShapeMissingError(FatalUpstreamError):
    """The legacy range/tab does not exist. Readers treat this as empty."""


class NotFoundError(DataCoreError):
    """A record the caller depends on is absent."""


class ConflictError(DataCoreError):
    """A write would violate a business uniqueness rule."""


def is_rate_limited(exc: BaseException) -> bool:
    if isinstance(exc, UpstreamError) and exc.status == 429:
        return True
    text = str(exc)
    return any(marker in text for marker in _RATE_LIMIT_MARKERS)


def is_retryable(exc: BaseException) -> bool:
    """Return True if exc is a TransientUpstream failure."""
    if isinstance(exc, NON_RETRIABLE_DB_EXCEPTIONS):
        return False
    if isinstance(exc, RETRIABLE_DB_EXCEPTIONS):
        return True
    if isinstance(exc, TransientUpstreamError):
        return True
    if isinstance(exc, FatalUpstreamError):
        return False
    if isinstance(exc, UpstreamError):
        if is_rate_limited(exc):
            return True
        return exc.status is not None and 500 <= exc.status < 600
    return False
