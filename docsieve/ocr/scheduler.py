"""Page-parallel OCR for multi-page documents."""

import asyncio
from collections.abc import Iterable, Sequence

from docsieve.extraction.base import BaseExtractionAdapter
from docsieve.extraction.models import ExtractionPayload, ProfileHint
from docsieve.logging.logger import Log
from docsieve.notification.notifier import ProgressNotifier
from docsieve.pipeline.context import CancellationToken
from docsieve.pipeline.exceptions import EmptyDocumentError
from docsieve.pipeline.models import PageResult, PageStatus, Stage
from docsieve.retry.controller import (
    PermanentFailure,
    RetryController,
    StageSucceeded,
)
from docsieve.retry.policy import RetryPolicy


def partition_pages(page_count: int, batch_size: int) -> list[range]:
    """Split page indices into consecutive batches of at most ``batch_size``."""
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")
    return [
        range(start, min(start + batch_size, page_count))
        for start in range(0, page_count, batch_size)
    ]


def assemble_page_results(results: Iterable[PageResult], page_count: int) -> list[PageResult]:
    """Place results by page index, whatever order they completed in."""
    slots: list[PageResult | None] = [None] * page_count
    for result in results:
        if not 0 <= result.page_index < page_count:
            raise ValueError(f"Page index {result.page_index} out of range 0..{page_count - 1}")
        if slots[result.page_index] is not None:
            raise ValueError(f"Duplicate result for page {result.page_index}")
        slots[result.page_index] = result
    missing = [i for i, slot in enumerate(slots) if slot is None]
    if missing:
        raise ValueError(f"Missing OCR results for pages {missing}")
    return [slot for slot in slots if slot is not None]


class BatchOcrScheduler:
    """Runs the vision adapter over page images in sequential batches.

    Pages inside a batch run concurrently, bounded by a semaphore owned by
    the run. Each page has its own retry budget; a page that still fails
    is recorded as failed and the rest of the document carries on.
    """

    def __init__(
        self,
        *,
        adapter: BaseExtractionAdapter,
        retry_controller: RetryController,
        page_policy: RetryPolicy,
        notifier: ProgressNotifier | None = None,
    ) -> None:
        self._adapter = adapter
        self._retry = retry_controller
        self._page_policy = page_policy
        self._notifier = notifier

    async def run_batch_ocr(
        self,
        pages: Sequence[bytes],
        batch_size: int = 10,
        concurrency: int | None = None,
        *,
        document_id: int,
        mime_type: str = "application/pdf",
        hint: ProfileHint | None = None,
        cancellation: CancellationToken | None = None,
        progress_range: tuple[int, int] = (40, 85),
    ) -> list[PageResult]:
        if not pages:
            raise EmptyDocumentError(f"Document {document_id} has no pages to OCR")

        hint = hint or ProfileHint()
        batches = partition_pages(len(pages), batch_size)
        semaphore = asyncio.Semaphore(concurrency or batch_size)
        completed: list[PageResult] = []
        low, high = progress_range

        Log.info(
            f"Document {document_id}: OCR of {len(pages)} pages in {len(batches)} batches "
            f"(batch size {batch_size}, concurrency {concurrency or batch_size})"
        )

        for batch_number, batch in enumerate(batches, start=1):
            if cancellation is not None:
                cancellation.raise_if_cancelled(f"OCR batch {batch_number}")

            await asyncio.gather(
                *(
                    self._run_page(
                        semaphore,
                        completed,
                        document_id=document_id,
                        mime_type=mime_type,
                        page_index=index,
                        image=pages[index],
                        hint=hint,
                    )
                    for index in batch
                )
            )

            if self._notifier is not None:
                progress = low + (high - low) * batch_number // len(batches)
                await self._notifier.emit(
                    document_id,
                    Stage.VISION_OCR.value,
                    progress,
                    f"OCR batch {batch_number}/{len(batches)} done",
                )

        results = assemble_page_results(completed, len(pages))
        failed = [r.page_index for r in results if r.status is PageStatus.FAILED]
        if failed:
            Log.warning(f"Document {document_id}: OCR failed for pages {failed}")
        return results

    async def _run_page(
        self,
        semaphore: asyncio.Semaphore,
        completed: list[PageResult],
        *,
        document_id: int,
        mime_type: str,
        page_index: int,
        image: bytes,
        hint: ProfileHint,
    ) -> None:
        payload = ExtractionPayload(
            document_id=document_id,
            mime_type=mime_type,
            page_images=(image,),
            page_index=page_index,
        )
        async with semaphore:
            outcome = await self._retry.execute(
                lambda: self._adapter.extract(payload, hint),
                self._page_policy,
                stage=Stage.VISION_OCR,
                label=f"document {document_id} page {page_index + 1}",
            )

        if isinstance(outcome, StageSucceeded):
            completed.append(
                PageResult(
                    page_index=page_index,
                    text=outcome.value.text,
                    ocr_confidence=outcome.value.confidence,
                    status=PageStatus.OK,
                    attempts=len(outcome.attempts),
                    entities=tuple(outcome.value.entities),
                )
            )
            return

        detail = outcome.error if isinstance(outcome, PermanentFailure) else outcome.last_error
        completed.append(
            PageResult(
                page_index=page_index,
                text="",
                ocr_confidence=0.0,
                status=PageStatus.FAILED,
                attempts=len(outcome.attempts),
                error_detail=detail,
            )
        )
