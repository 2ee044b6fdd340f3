"""Query-time selection of the chunks most relevant to a question."""

import math
from collections.abc import Sequence

from docsieve.logging.logger import Log
from docsieve.pipeline.models import Chunk, RetrievalResult, ScoredChunk
from docsieve.retrieval.keywords import query_keywords

CHARS_PER_TOKEN = 4


def estimate_tokens(text: str) -> int:
    return math.ceil(len(text) / CHARS_PER_TOKEN)


class RelevanceRetriever:
    """Scores chunks by keyword overlap with a small bias towards the start.

    Pure and deterministic: the same chunks and query always give the same
    selection.
    """

    def __init__(self, position_weight: float = 0.2) -> None:
        if not 0.0 <= position_weight <= 1.0:
            raise ValueError("position_weight must be between 0 and 1")
        self._position_weight = position_weight

    def retrieve(
        self,
        chunks: Sequence[Chunk],
        query: str,
        top_k: int = 5,
        token_budget: int = 30_000,
    ) -> RetrievalResult:
        if not chunks:
            return RetrievalResult(selected=())
        if top_k < 1:
            raise ValueError("top_k must be at least 1")

        keywords = query_keywords(query)
        overlaps = [self._overlap(chunk, keywords) for chunk in chunks]
        best = max(overlaps)

        if best <= 0:
            Log.debug(f"No keyword overlap for query, using first {top_k} chunks")
            selected = [ScoredChunk(c.id, c.index, 0.0) for c in chunks[:top_k]]
            return RetrievalResult(
                selected=tuple(self._fit_budget(selected, chunks, token_budget)),
                used_fallback=True,
            )

        count = len(chunks)
        scored = [
            ScoredChunk(
                chunk_id=chunk.id,
                index=chunk.index,
                score=(
                    (1 - self._position_weight) * overlap / best
                    + self._position_weight * (1 - chunk.index / count)
                )
                if overlap > 0
                else 0.0,
            )
            for chunk, overlap in zip(chunks, overlaps)
        ]
        scored.sort(key=lambda c: (-c.score, c.index))
        selected = self._fit_budget(scored[:top_k], chunks, token_budget)
        return RetrievalResult(selected=tuple(selected))

    @staticmethod
    def _overlap(chunk: Chunk, keywords: list[str]) -> float:
        return sum(
            1 + math.log(chunk.keywords[k]) for k in keywords if chunk.keywords.get(k, 0) > 0
        )

    @staticmethod
    def _fit_budget(
        selected: list[ScoredChunk],
        chunks: Sequence[Chunk],
        token_budget: int,
    ) -> list[ScoredChunk]:
        """Drop the lowest-ranked chunks until the selection fits. Keeps at least one."""
        by_id = {c.id: c for c in chunks}
        kept = list(selected)
        total = sum(estimate_tokens(by_id[c.chunk_id].text) for c in kept)
        while len(kept) > 1 and total > token_budget:
            dropped = kept.pop()
            total -= estimate_tokens(by_id[dropped.chunk_id].text)
        return kept


def build_context(chunks: Sequence[Chunk], result: RetrievalResult) -> str:
    """Selected chunk texts joined in document order."""
    by_id = {c.id: c for c in chunks}
    return "\n\n".join(by_id[chunk_id].text for chunk_id in result.ordered_chunk_ids)
