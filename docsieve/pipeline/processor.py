import asyncio
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import partial
from pathlib import Path
from typing import NoReturn

from docsieve.cascade.router import CascadeRouter
from docsieve.cascade.state import CascadeState, CascadeStatus
from docsieve.classification.classifier import DocumentClassifier
from docsieve.classification.models import DocumentPreview
from docsieve.config.settings import Settings
from docsieve.database.repositories.document_repository import PostgresDocumentStore
from docsieve.extraction.base import BaseExtractionAdapter
from docsieve.extraction.exceptions import AdapterError
from docsieve.extraction.factory import ExtractorFactory
from docsieve.extraction.models import ExtractionPayload, ExtractionResult, ProfileHint
from docsieve.extraction.prompt_loader import PromptLibrary
from docsieve.logging.logger import Log
from docsieve.notification.factory import NotifierFactory
from docsieve.notification.notifier import ProgressNotifier
from docsieve.ocr.cache import OcrCache
from docsieve.ocr.scheduler import BatchOcrScheduler
from docsieve.pdf.exceptions import PdfExtractionError
from docsieve.pdf.factory import PdfExtractorFactory
from docsieve.pipeline.context import CancellationToken, RunContext
from docsieve.pipeline.exceptions import (
    DocumentNotReadyError,
    PermanentDocumentError,
    PipelineCancelledError,
    PipelineError,
    QueryFailedError,
)
from docsieve.pipeline.file_loader import FileLoader
from docsieve.pipeline.inspection import DocumentInspector, InspectedDocument
from docsieve.pipeline.models import (
    DEFAULT_STAGE_ORDER,
    CachedOcrResult,
    Chunk,
    Document,
    DocumentAnalysis,
    DocumentStatus,
    PageResult,
    PageStatus,
    QueryAnswer,
    Stage,
)
from docsieve.retrieval.chunker import Chunker, text_hash
from docsieve.retrieval.retriever import RelevanceRetriever, build_context
from docsieve.retry.controller import RetryController
from docsieve.retry.policy import RetryPolicy
from docsieve.storage.base import BaseDocumentStore

_TEXT_SAMPLE_CHARS = 4_000

# Errors raised while loading or opening the file. Retrying cannot fix them.
_INPUT_ERRORS = (PipelineError, PdfExtractionError, FileNotFoundError)


@dataclass(frozen=True)
class PipelineOptions:
    stage_policy: RetryPolicy = RetryPolicy()
    page_policy: RetryPolicy = RetryPolicy()
    stages: tuple[Stage, ...] = DEFAULT_STAGE_ORDER
    ocr_batch_size: int = 10
    ocr_concurrency: int | None = None
    chunking_threshold_chars: int = 15_000
    retrieval_top_k: int = 5
    retrieval_token_budget: int = 30_000
    default_domain: str = "general"

    @classmethod
    def from_settings(cls, settings: Settings) -> "PipelineOptions":
        return cls(
            stage_policy=RetryPolicy.for_stages(settings),
            page_policy=RetryPolicy.for_pages(settings),
            ocr_batch_size=settings.ocr_batch_size,
            ocr_concurrency=settings.ocr_concurrency,
            chunking_threshold_chars=settings.chunking_threshold_chars,
            retrieval_top_k=settings.retrieval_top_k,
            retrieval_token_budget=settings.retrieval_token_budget,
            default_domain=settings.default_domain,
        )


class DocumentPipeline:
    """Orchestrates extraction for one document at a time.

    Pipeline: load -> inspect -> classify -> cascade -> chunk -> persist.
    Every status change is saved and announced through the notifier.
    """

    def __init__(
        self,
        *,
        store: BaseDocumentStore,
        file_loader: FileLoader,
        inspector: DocumentInspector,
        classifier: DocumentClassifier,
        adapters: Mapping[Stage, BaseExtractionAdapter],
        notifier: ProgressNotifier,
        retry_controller: RetryController | None = None,
        ocr_cache: OcrCache | None = None,
        chunker: Chunker | None = None,
        retriever: RelevanceRetriever | None = None,
        options: PipelineOptions | None = None,
    ) -> None:
        self._store = store
        self._file_loader = file_loader
        self._inspector = inspector
        self._classifier = classifier
        self._adapters = dict(adapters)
        self._notifier = notifier
        self._retry = retry_controller or RetryController()
        self._router = CascadeRouter(self._retry)
        self._ocr_cache = ocr_cache
        self._chunker = chunker or Chunker()
        self._retriever = retriever or RelevanceRetriever()
        self._options = options or PipelineOptions()
        self._scheduler = BatchOcrScheduler(
            adapter=self._adapters[Stage.VISION_OCR],
            retry_controller=self._retry,
            page_policy=self._options.page_policy,
            notifier=notifier,
        )

    async def process_document(
        self,
        document_id: int,
        cancellation: CancellationToken | None = None,
    ) -> DocumentAnalysis:
        """Extract a document and persist the outcome.

        Transient failures never escape: once every stage is exhausted the
        returned analysis has status ``failed`` and the full attempt log.

        Raises:
            DocumentNotFoundError: if the document does not exist.
            PermanentDocumentError: after persisting the document as failed,
                when the input itself cannot be processed.
        """
        with Log.document(document_id):
            document = await self._store.find_document(document_id)
            context = RunContext(
                document=document,
                stage_policy=self._options.stage_policy,
                stages=self._options.stages,
                cancellation=cancellation or CancellationToken(),
                store=self._store,
            )
            Log.info(f"Processing document {document_id} ({document.mime_type})")
            try:
                return await self._run(context)
            except PipelineCancelledError as exc:
                Log.warning(f"Document {document_id}: {exc}")
                return await self._finish_failed(context, "cancelled")

    async def answer_query(self, document_id: int, question: str) -> QueryAnswer:
        """Answer a question from a processed document's text.

        Raises:
            DocumentNotFoundError: if the document does not exist.
            DocumentNotReadyError: if the document has no extracted text yet.
            QueryFailedError: if no stage produced an answer.
        """
        if not question.strip():
            raise ValueError("question must not be empty")

        with Log.document(document_id):
            return await self._answer(document_id, question)

    async def _answer(self, document_id: int, question: str) -> QueryAnswer:
        document = await self._store.find_document(document_id)
        if not document.text.strip():
            raise DocumentNotReadyError(f"Document {document_id} has no extracted text")

        if len(document.text) <= self._options.chunking_threshold_chars:
            context_text = document.text
            chunks_used: list[str] = []
        else:
            chunks = await self._ensure_chunks(document)
            retrieval = self._retriever.retrieve(
                chunks,
                question,
                top_k=self._options.retrieval_top_k,
                token_budget=self._options.retrieval_token_budget,
            )
            context_text = build_context(chunks, retrieval)
            chunks_used = retrieval.ordered_chunk_ids
            Log.info(
                f"Document {document_id}: answering from {len(chunks_used)}/{len(chunks)} chunks"
                + (" (no keyword overlap)" if retrieval.used_fallback else "")
            )

        stages = tuple(s for s in self._options.stages if s is not Stage.VISION_OCR)
        context = RunContext(
            document=document,
            stage_policy=self._options.stage_policy,
            stages=stages,
            store=self._store,
            persist_attempts=False,
        )
        payload = ExtractionPayload(
            document_id=document.id,
            mime_type=document.mime_type,
            text=context_text,
            question=question,
        )
        hint = ProfileHint(domain=document.domain or self._options.default_domain)
        state = await self._router.run(
            context,
            {stage: partial(self._adapters[stage].extract, payload, hint) for stage in stages},
        )
        if state.status is not CascadeStatus.COMPLETED:
            raise QueryFailedError(f"Document {document_id}: no answer ({state.error})")

        result: ExtractionResult = state.payload
        return QueryAnswer(
            answer=result.text,
            confidence=result.confidence,
            chunks_used=chunks_used,
            stage=state.winning_stage,
        )

    async def _run(self, context: RunContext) -> DocumentAnalysis:
        document = context.document
        await self._set_status(context, DocumentStatus.CLASSIFYING, 5, "Reading document")

        try:
            raw_bytes = await asyncio.to_thread(self._file_loader.load, document)
            inspected = await asyncio.to_thread(
                self._inspector.inspect, document.mime_type, raw_bytes
            )
            context.raw_bytes = raw_bytes
            context.page_texts = inspected.page_texts
            document.page_count = inspected.page_count
            context.cancellation.raise_if_cancelled("classification")
            preview = await self._preview(context, inspected)
        except PipelineCancelledError:
            raise
        except _INPUT_ERRORS as exc:
            await self._fail_permanently(context, str(exc))

        profile = await self._classifier.classify(document, preview)
        context.profile = profile
        if not inspected.renderable:
            context.stages = tuple(s for s in context.stages if s is not Stage.VISION_OCR)

        await self._set_status(
            context,
            DocumentStatus.EXTRACTING,
            20,
            f"Extracting, starting with {profile.recommended_entry_stage.value}",
        )
        hint = ProfileHint(
            domain=document.domain or self._options.default_domain,
            structural_complexity=profile.structural_complexity,
            has_tables=profile.has_tables,
            has_handwriting=profile.has_handwriting,
            document_type=profile.document_type,
            language=profile.language,
        )
        stage_calls = {
            Stage.REASONING: partial(self._text_stage, context, Stage.REASONING, hint),
            Stage.FAST_STRUCTURED: partial(self._text_stage, context, Stage.FAST_STRUCTURED, hint),
            Stage.VISION_OCR: partial(self._vision_stage, context, inspected, hint),
        }
        policies = {Stage.VISION_OCR: self._vision_policy(inspected)}
        state = await self._router.run(
            context,
            stage_calls,
            entry_stage=profile.recommended_entry_stage,
            policies=policies,
        )

        if context.page_results:
            await self._store.save_page_results(document.id, context.page_results)

        if state.status is CascadeStatus.COMPLETED:
            return await self._finish_completed(context, state)
        if state.permanent:
            await self._fail_permanently(context, state.error or "permanent failure")
        return await self._finish_failed(context, state.error or "all stages exhausted")

    async def _preview(self, context: RunContext, inspected: InspectedDocument) -> DocumentPreview:
        document = context.document
        text = context.text_layer
        first_image = None
        if not inspected.has_text_layer and inspected.renderable:
            first_image = await asyncio.to_thread(
                self._inspector.first_page_image, inspected, context.raw_bytes
            )
        return DocumentPreview(
            mime_type=document.mime_type,
            file_size_bytes=document.file_size_bytes,
            text_sample=text[:_TEXT_SAMPLE_CHARS],
            first_page_image=first_image,
            page_count=inspected.page_count,
            has_text_layer=inspected.has_text_layer,
        )

    async def _text_stage(
        self,
        context: RunContext,
        stage: Stage,
        hint: ProfileHint,
    ) -> ExtractionResult:
        payload = ExtractionPayload(
            document_id=context.document.id,
            mime_type=context.document.mime_type,
            text=context.text_layer,
        )
        return await self._adapters[stage].extract(payload, hint)

    async def _vision_stage(
        self,
        context: RunContext,
        inspected: InspectedDocument,
        hint: ProfileHint,
    ) -> ExtractionResult:
        document = context.document
        images = await self._page_images(context, inspected)
        if len(images) <= 1:
            payload = ExtractionPayload(
                document_id=document.id,
                mime_type=document.mime_type,
                page_images=tuple(images),
                page_index=0 if images else None,
            )
            return await self._adapters[Stage.VISION_OCR].extract(payload, hint)

        page_results = await self._cached_page_results(document, len(images))
        if page_results is None:
            await self._notifier.emit(
                document.id, Stage.VISION_OCR.value, 40, f"OCR of {len(images)} pages"
            )
            page_results = await self._scheduler.run_batch_ocr(
                images,
                self._options.ocr_batch_size,
                self._options.ocr_concurrency,
                document_id=document.id,
                mime_type=document.mime_type,
                hint=hint,
                cancellation=context.cancellation,
            )
            if self._ocr_cache is not None:
                await self._ocr_cache.put(
                    CachedOcrResult(
                        file_hash_sha256=document.file_hash_sha256,
                        page_results=tuple(page_results),
                        cached_at=datetime.now(timezone.utc),
                    )
                )
        context.page_results = page_results

        ok_pages = [p for p in page_results if p.status is PageStatus.OK]
        if not ok_pages:
            raise AdapterError(
                f"OCR failed on all {len(page_results)} pages",
                code="all_pages_failed",
                retryable=True,
            )
        return ExtractionResult(
            text="\n\n".join(p.text for p in ok_pages if p.text.strip()),
            entities=[e for p in ok_pages for e in p.entities],
            confidence=sum(p.ocr_confidence for p in ok_pages) / len(ok_pages),
        )

    async def _cached_page_results(
        self, document: Document, page_count: int
    ) -> list[PageResult] | None:
        if self._ocr_cache is None:
            return None
        cached = await self._ocr_cache.get(document.file_hash_sha256)
        if cached is None or len(cached.page_results) != page_count:
            return None
        return list(cached.page_results)

    async def _page_images(self, context: RunContext, inspected: InspectedDocument) -> list[bytes]:
        if context.page_images is None:
            context.page_images = await asyncio.to_thread(
                self._inspector.page_images, inspected, context.raw_bytes
            )
        return context.page_images

    def _vision_policy(self, inspected: InspectedDocument) -> RetryPolicy:
        """Batched OCR retries and times out per page, so the stage itself runs once."""
        if inspected.page_count <= 1:
            return self._options.stage_policy
        return RetryPolicy(max_attempts=1, backoff_seconds=(), attempt_timeout_seconds=None)

    async def _ensure_chunks(self, document: Document) -> list[Chunk]:
        current_hash = text_hash(document.text)
        if document.chunks and document.chunks_text_hash == current_hash:
            return document.chunks
        chunks = self._chunker.chunk(document.id, document.text)
        document.chunks = chunks
        document.chunks_text_hash = current_hash
        await self._store.save_chunks(document.id, chunks)
        await self._store.save_document(document)
        Log.info(f"Document {document.id}: text split into {len(chunks)} chunks")
        return chunks

    async def _finish_completed(self, context: RunContext, state: CascadeState) -> DocumentAnalysis:
        document = context.document
        result: ExtractionResult = state.payload
        document.text = result.text
        document.winning_stage = state.winning_stage
        document.confidence = result.confidence
        document.entities = list(result.entities)
        document.error_message = None
        document.failed_pages = (
            [p.page_index for p in context.page_results if p.status is PageStatus.FAILED]
            if state.winning_stage is Stage.VISION_OCR
            else []
        )

        if len(document.text) > self._options.chunking_threshold_chars:
            await self._set_status(
                context, DocumentStatus.CHUNKED_RETRIEVAL, 90, "Preparing chunks"
            )
            await self._ensure_chunks(document)

        final = DocumentStatus.PARTIAL if document.failed_pages else DocumentStatus.COMPLETED
        message = (
            f"Done with {state.winning_stage.value if state.winning_stage else 'unknown'}"
            + (f", {len(document.failed_pages)} pages failed" if document.failed_pages else "")
        )
        await self._set_status(context, final, 100, message)
        Log.info(
            f"Document {document.id} {final.value}: {len(document.text)} chars, "
            f"{len(document.entities)} entities, {len(context.attempts)} attempts"
        )
        return self._analysis(context)

    async def _finish_failed(self, context: RunContext, message: str) -> DocumentAnalysis:
        context.document.error_message = message
        await self._set_status(context, DocumentStatus.FAILED, 100, f"Failed: {message}")
        Log.error(f"Document {context.document.id} failed: {message}")
        return self._analysis(context)

    async def _fail_permanently(self, context: RunContext, message: str) -> NoReturn:
        await self._finish_failed(context, message)
        raise PermanentDocumentError(context.document.id, message)

    async def _set_status(
        self,
        context: RunContext,
        status: DocumentStatus,
        progress: int,
        message: str,
    ) -> None:
        document = context.document
        document.status = status
        document.updated_at = datetime.now(timezone.utc)
        await self._store.save_document(document)
        await self._notifier.emit(document.id, status.value, progress, message)

    @staticmethod
    def _analysis(context: RunContext) -> DocumentAnalysis:
        document = context.document
        return DocumentAnalysis(
            document_id=document.id,
            run_id=context.run_id,
            status=document.status,
            winning_stage=document.winning_stage,
            confidence=document.confidence,
            text=document.text,
            entities=list(document.entities),
            profile=context.profile,
            attempts=list(context.attempts),
            failed_pages=list(document.failed_pages),
            page_results=list(context.page_results),
            chunk_count=len(document.chunks),
            error_message=document.error_message,
        )


def build_pipeline(
    settings: Settings,
    store: BaseDocumentStore | None = None,
    files_root: Path | None = None,
) -> DocumentPipeline:
    """Build a DocumentPipeline with all required adapters."""
    store = store if store is not None else PostgresDocumentStore()
    prompts = PromptLibrary()
    client = ExtractorFactory.create_client(settings)
    return DocumentPipeline(
        store=store,
        file_loader=FileLoader(files_root=files_root or Path(settings.files_root)),
        inspector=DocumentInspector(PdfExtractorFactory.create(settings)),
        classifier=DocumentClassifier(
            client=client,
            model=settings.classifier_model_name,
            prompts=prompts,
            timeout_seconds=settings.classifier_timeout_seconds,
            fast_track_max_bytes=settings.classifier_fast_track_max_bytes,
        ),
        adapters=ExtractorFactory.create_adapters(settings, client=client, prompts=prompts),
        notifier=NotifierFactory.create(settings),
        ocr_cache=OcrCache(store, max_size=settings.ocr_cache_size),
        chunker=Chunker(settings.chunk_size_chars, settings.chunk_overlap_chars),
        retriever=RelevanceRetriever(settings.retrieval_position_weight),
        options=PipelineOptions.from_settings(settings),
    )
