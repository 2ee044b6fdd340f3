from dataclasses import replace

from docsieve.pipeline.exceptions import DocumentNotFoundError
from docsieve.pipeline.models import (
    CachedOcrResult,
    Chunk,
    Document,
    PageResult,
    ProcessingAttempt,
)
from docsieve.storage.base import BaseDocumentStore


class InMemoryDocumentStore(BaseDocumentStore):
    """Process-local store for development, tests and single-shot runs."""

    def __init__(self, documents: list[Document] | None = None) -> None:
        self._documents: dict[int, Document] = {}
        self.attempts: dict[int, list[ProcessingAttempt]] = {}
        self.page_results: dict[int, list[PageResult]] = {}
        self.chunks: dict[int, list[Chunk]] = {}
        self.ocr_cache: dict[str, CachedOcrResult] = {}
        for document in documents or []:
            self._documents[document.id] = self._copy(document)

    async def find_document(self, document_id: int) -> Document:
        document = self._documents.get(document_id)
        if document is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return self._copy(document)

    async def save_document(self, document: Document) -> None:
        self._documents[document.id] = self._copy(document)

    async def append_attempt(self, document_id: int, attempt: ProcessingAttempt) -> None:
        if attempt.run_id is None:
            raise ValueError("Attempt has no run id")
        self.attempts.setdefault(document_id, []).append(attempt)

    async def list_attempts(
        self, document_id: int, run_id: str | None = None
    ) -> list[ProcessingAttempt]:
        return [
            a
            for a in self.attempts.get(document_id, [])
            if run_id is None or a.run_id == run_id
        ]

    async def save_page_results(self, document_id: int, page_results: list[PageResult]) -> None:
        self.page_results[document_id] = list(page_results)

    async def save_chunks(self, document_id: int, chunks: list[Chunk]) -> None:
        self.chunks[document_id] = list(chunks)

    async def find_cached_ocr(self, file_hash_sha256: str) -> CachedOcrResult | None:
        return self.ocr_cache.get(file_hash_sha256)

    async def save_cached_ocr(self, result: CachedOcrResult) -> None:
        self.ocr_cache[result.file_hash_sha256] = result

    @staticmethod
    def _copy(document: Document) -> Document:
        return replace(
            document,
            entities=list(document.entities),
            failed_pages=list(document.failed_pages),
            chunks=list(document.chunks),
        )
