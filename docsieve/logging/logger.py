import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

# Document being processed by the current asyncio task, if any.
_document_id: ContextVar[int | None] = ContextVar("docsieve_document_id", default=None)


class _DocumentFilter(logging.Filter):
    """Prefixes records with the document id bound to the running task."""

    def filter(self, record: logging.LogRecord) -> bool:
        document_id = _document_id.get()
        record.document = f"[doc {document_id}] " if document_id is not None else ""
        return True


class Log:
    """Centralized logging with structured format.

    Concurrent documents run as separate asyncio tasks, so the bound
    document id follows each task without being passed around.
    """

    _logger: logging.Logger = logging.getLogger("docsieve")

    @classmethod
    def configure(cls, log_level: str) -> None:
        """Configure the logger with the specified level and stdout handler."""
        cls._logger.setLevel(log_level.upper())
        if not cls._logger.handlers:
            handler = logging.StreamHandler(sys.stdout)
            handler.addFilter(_DocumentFilter())
            handler.setFormatter(
                logging.Formatter("%(asctime)s [%(levelname)s] %(document)s%(message)s")
            )
            cls._logger.addHandler(handler)

    @classmethod
    @contextmanager
    def document(cls, document_id: int) -> Iterator[None]:
        """Bind ``document_id`` to every message logged inside the block."""
        token = _document_id.set(document_id)
        try:
            yield
        finally:
            _document_id.reset(token)

    @classmethod
    def info(cls, message: str, **kwargs: object) -> None:
        """Log an info message."""
        cls._logger.info(message, extra=kwargs)

    @classmethod
    def error(cls, message: str, **kwargs: object) -> None:
        """Log an error message."""
        cls._logger.error(message, extra=kwargs)

    @classmethod
    def warning(cls, message: str, **kwargs: object) -> None:
        """Log a warning message."""
        cls._logger.warning(message, extra=kwargs)

    @classmethod
    def debug(cls, message: str, **kwargs: object) -> None:
        """Log a debug message."""
        cls._logger.debug(message, extra=kwargs)
