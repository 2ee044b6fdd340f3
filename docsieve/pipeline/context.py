import asyncio
import uuid
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

from docsieve.pipeline.exceptions import PipelineCancelledError
from docsieve.pipeline.models import (
    DEFAULT_STAGE_ORDER,
    Document,
    DocumentProfile,
    PageResult,
    ProcessingAttempt,
    Stage,
)
from docsieve.retry.policy import RetryPolicy

if TYPE_CHECKING:
    from docsieve.storage.base import BaseDocumentStore


class CancellationToken:
    """Cooperative cancellation, checked at stage and batch boundaries only."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, where: str) -> None:
        if self._event.is_set():
            raise PipelineCancelledError(f"Cancelled before {where}")


@dataclass(slots=True)
class RunContext:
    """Per-document, per-run state. Owned by exactly one pipeline task."""

    document: Document
    stage_policy: RetryPolicy = field(default_factory=RetryPolicy)
    stages: tuple[Stage, ...] = DEFAULT_STAGE_ORDER
    cancellation: CancellationToken = field(default_factory=CancellationToken)
    store: "BaseDocumentStore | None" = None
    persist_attempts: bool = True
    raw_bytes: bytes = b""
    page_texts: list[str] = field(default_factory=list)
    page_images: list[bytes] | None = None
    profile: DocumentProfile | None = None
    attempts: list[ProcessingAttempt] = field(default_factory=list)
    page_results: list[PageResult] = field(default_factory=list)
    run_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @property
    def text_layer(self) -> str:
        return "\n".join(t for t in self.page_texts if t.strip()).strip()

    async def record_attempt(self, attempt: ProcessingAttempt) -> None:
        """Stamp the run id, append to the attempt log, then hand the entry to storage."""
        attempt = replace(attempt, run_id=self.run_id)
        self.attempts.append(attempt)
        if self.persist_attempts and self.store is not None:
            await self.store.append_attempt(self.document.id, attempt)
