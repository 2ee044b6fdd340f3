from abc import ABC, abstractmethod

from docsieve.pipeline.models import (
    CachedOcrResult,
    Chunk,
    Document,
    PageResult,
    ProcessingAttempt,
)


class BaseDocumentStore(ABC):
    """Storage collaborator. The pipeline calls it; schema lives behind it."""

    @abstractmethod
    async def find_document(self, document_id: int) -> Document:
        """Load a document with its cached chunks.

        Raises:
            DocumentNotFoundError: if no document with this ID exists.
        """

    @abstractmethod
    async def save_document(self, document: Document) -> None:
        """Persist the document's status and extraction results."""

    @abstractmethod
    async def append_attempt(self, document_id: int, attempt: ProcessingAttempt) -> None:
        """Append one entry to the document's attempt log.

        Raises:
            ValueError: if the attempt was not stamped with a run id.
        """

    @abstractmethod
    async def list_attempts(
        self, document_id: int, run_id: str | None = None
    ) -> list[ProcessingAttempt]:
        """Return the attempt log in write order, optionally for a single run."""

    @abstractmethod
    async def save_page_results(self, document_id: int, page_results: list[PageResult]) -> None:
        """Replace the document's OCR page results."""

    @abstractmethod
    async def save_chunks(self, document_id: int, chunks: list[Chunk]) -> None:
        """Replace the document's chunk set."""

    @abstractmethod
    async def find_cached_ocr(self, file_hash_sha256: str) -> CachedOcrResult | None:
        """Return cached OCR output for a file hash, if any."""

    @abstractmethod
    async def save_cached_ocr(self, result: CachedOcrResult) -> None:
        """Store OCR output under its file hash."""
