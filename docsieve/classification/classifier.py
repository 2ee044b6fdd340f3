"""Pre-analysis that picks the cascade entry stage for a document."""

import asyncio
import math
from typing import Any

from docsieve.classification.models import DocumentPreview
from docsieve.extraction.client_base import BaseExtractionClient
from docsieve.extraction.prompt_loader import PromptLibrary
from docsieve.extraction.response_parser import parse_json_object
from docsieve.logging.logger import Log
from docsieve.pipeline.models import Document, DocumentProfile, Stage, StructuralComplexity

_COMPLEX_MIN_BYTES = 5_000_000
_STRUCTURED_MIN_BYTES = 1_000_000
_BYTES_PER_PAGE_ESTIMATE = 100_000
_TEXT_SAMPLE_CHARS = 4_000


def recommend_entry_stage(
    *,
    has_text_layer: bool,
    complexity: StructuralComplexity,
    has_tables: bool,
    has_handwriting: bool,
) -> Stage:
    if not has_text_layer:
        return Stage.VISION_OCR
    if complexity is StructuralComplexity.SIMPLE and not has_tables and not has_handwriting:
        return Stage.FAST_STRUCTURED
    return Stage.REASONING


class DocumentClassifier:
    """Recommends an initial cascade stage. Never blocks the pipeline.

    Small PDFs with a text layer skip the model call entirely. Any failure
    of the model call falls back to a heuristic profile built from the
    preview's structural signals.
    """

    def __init__(
        self,
        *,
        client: BaseExtractionClient | None,
        model: str,
        prompts: PromptLibrary,
        timeout_seconds: float = 15.0,
        fast_track_max_bytes: int = 2 * 1024 * 1024,
    ) -> None:
        self._client = client
        self._model = model
        self._prompts = prompts
        self._timeout_seconds = timeout_seconds
        self._fast_track_max_bytes = fast_track_max_bytes

    async def classify(self, document: Document, preview: DocumentPreview) -> DocumentProfile:
        if self._is_fast_track(preview):
            Log.info(
                f"Document {document.id}: small PDF with text layer "
                f"({preview.file_size_bytes // 1024}KB), fast track"
            )
            return self._fast_track_profile(preview)

        client = self._client
        if client is None:
            return self.heuristic_profile(preview)

        try:
            raw = await asyncio.wait_for(
                self._call_model(client, preview), timeout=self._timeout_seconds
            )
            profile = self._build_profile(parse_json_object(raw), preview)
        except Exception as exc:
            Log.warning(
                f"Classification of document {document.id} failed, using heuristics: {exc!r}"
            )
            return self.heuristic_profile(preview)

        Log.info(
            f"Document {document.id} classified as {profile.structural_complexity.value} "
            f"{profile.document_type}, entry stage {profile.recommended_entry_stage.value}"
        )
        return profile

    def heuristic_profile(self, preview: DocumentPreview) -> DocumentProfile:
        size = preview.file_size_bytes
        if size > _COMPLEX_MIN_BYTES:
            complexity = StructuralComplexity.COMPLEX
        elif size > _STRUCTURED_MIN_BYTES:
            complexity = StructuralComplexity.STRUCTURED
        else:
            complexity = StructuralComplexity.SIMPLE
        page_count = preview.page_count or max(1, math.ceil(size / _BYTES_PER_PAGE_ESTIMATE))
        return DocumentProfile(
            has_text_layer=preview.has_text_layer,
            estimated_page_count=page_count,
            structural_complexity=complexity,
            has_tables=False,
            has_handwriting=False,
            recommended_entry_stage=recommend_entry_stage(
                has_text_layer=preview.has_text_layer,
                complexity=complexity,
                has_tables=False,
                has_handwriting=False,
            ),
            source="heuristic",
        )

    def _is_fast_track(self, preview: DocumentPreview) -> bool:
        return (
            preview.mime_type == "application/pdf"
            and preview.has_text_layer
            and preview.file_size_bytes < self._fast_track_max_bytes
        )

    def _fast_track_profile(self, preview: DocumentPreview) -> DocumentProfile:
        return DocumentProfile(
            has_text_layer=True,
            estimated_page_count=preview.page_count or 1,
            structural_complexity=StructuralComplexity.SIMPLE,
            has_tables=False,
            has_handwriting=False,
            recommended_entry_stage=Stage.FAST_STRUCTURED,
            source="fast_track",
            document_type="document",
        )

    async def _call_model(self, client: BaseExtractionClient, preview: DocumentPreview) -> str:
        prompt = self._prompts.classification_template.format(
            text_sample=preview.text_sample[:_TEXT_SAMPLE_CHARS] or "(see attached first page)",
            json_schema=self._prompts.classification_schema_text,
        )
        images = (preview.first_page_image,) if preview.first_page_image else ()
        return await client.create_chat_completion(
            model=self._model,
            temperature=0.0,
            system_prompt=self._prompts.system_prompt,
            user_prompt=prompt,
            json_schema=self._prompts.classification_schema,
            images=images,
        )

    @staticmethod
    def _build_profile(data: dict[str, Any], preview: DocumentPreview) -> DocumentProfile:
        complexity = StructuralComplexity(str(data.get("complexity", "")).lower())
        has_tables = bool(data.get("has_tables", False))
        has_handwriting = bool(data.get("has_handwriting", False))
        page_count = preview.page_count
        if page_count is None:
            raw_pages = data.get("page_count")
            page_count = raw_pages if isinstance(raw_pages, int) and raw_pages > 0 else 1
        return DocumentProfile(
            has_text_layer=preview.has_text_layer,
            estimated_page_count=page_count,
            structural_complexity=complexity,
            has_tables=has_tables,
            has_handwriting=has_handwriting,
            recommended_entry_stage=recommend_entry_stage(
                has_text_layer=preview.has_text_layer,
                complexity=complexity,
                has_tables=has_tables,
                has_handwriting=has_handwriting,
            ),
            source="model",
            document_type=str(data.get("document_type") or "other"),
            language=str(data.get("language") or "en"),
        )
