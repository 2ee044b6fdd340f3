import hashlib

from docsieve.pipeline.models import Chunk
from docsieve.retrieval.keywords import keyword_counts


def text_hash(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


class Chunker:
    """Splits a document's text into fixed, overlapping character windows."""

    def __init__(self, chunk_size: int = 20_000, overlap: int = 500) -> None:
        if chunk_size < 1:
            raise ValueError("chunk_size must be at least 1")
        if not 0 <= overlap < chunk_size:
            raise ValueError("overlap must be between 0 and chunk_size - 1")
        self._chunk_size = chunk_size
        self._overlap = overlap

    def chunk(self, document_id: int, text: str) -> list[Chunk]:
        if not text:
            return []
        step = self._chunk_size - self._overlap
        chunks: list[Chunk] = []
        start = 0
        while True:
            end = min(start + self._chunk_size, len(text))
            window = text[start:end]
            digest = hashlib.sha1(window.encode("utf-8")).hexdigest()[:10]
            chunks.append(
                Chunk(
                    id=f"{document_id}:{len(chunks)}:{digest}",
                    document_id=document_id,
                    index=len(chunks),
                    start=start,
                    end=end,
                    text=window,
                    keywords=keyword_counts(window),
                )
            )
            if end >= len(text):
                return chunks
            start += step
