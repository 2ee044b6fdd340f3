import asyncio
from enum import Enum

import httpx

from docsieve.extraction.exceptions import AdapterError


class FailureKind(str, Enum):
    TRANSIENT = "transient"
    PERMANENT = "permanent"


_TRANSIENT_TYPES: tuple[type[BaseException], ...] = (
    TimeoutError,
    asyncio.TimeoutError,
    ConnectionError,
    httpx.TransportError,
)


def classify_error(exc: BaseException) -> FailureKind:
    """Decide whether retrying the call that raised ``exc`` can help.

    Adapter errors carry their own verdict. Timeouts and transport errors are
    transient; anything else (bad input, corrupt files, bugs) is permanent.
    """
    if isinstance(exc, AdapterError):
        return FailureKind.TRANSIENT if exc.retryable else FailureKind.PERMANENT
    if isinstance(exc, _TRANSIENT_TYPES):
        return FailureKind.TRANSIENT
    return FailureKind.PERMANENT


def error_code(exc: BaseException) -> str:
    if isinstance(exc, AdapterError):
        return exc.code
    if isinstance(exc, (TimeoutError, asyncio.TimeoutError)):
        return "timeout"
    return type(exc).__name__
