"""Chat-completion backed extraction adapters."""

import json

from docsieve.extraction.base import BaseExtractionAdapter
from docsieve.extraction.client_base import BaseExtractionClient
from docsieve.extraction.exceptions import AdapterError
from docsieve.extraction.models import ExtractionPayload, ExtractionResult, ProfileHint
from docsieve.extraction.prompt_loader import PromptLibrary
from docsieve.extraction.response_parser import (
    build_answer,
    build_extraction_result,
    parse_json_object,
)
from docsieve.logging.logger import Log
from docsieve.pipeline.models import Stage


class LlmExtractionAdapter(BaseExtractionAdapter):
    """Shared prompt building and response parsing for the text stages."""

    strict_schema: bool = True

    def __init__(
        self,
        *,
        client: BaseExtractionClient,
        model: str,
        prompts: PromptLibrary,
        temperature: float | None = 0.0,
        max_input_chars: int = 120_000,
    ) -> None:
        self._client = client
        self._model = model
        self._prompts = prompts
        self._temperature = temperature
        self._max_input_chars = max_input_chars

    async def extract(self, payload: ExtractionPayload, hint: ProfileHint) -> ExtractionResult:
        if payload.question is not None:
            return await self._answer(payload, hint)
        if not payload.text.strip():
            raise AdapterError(
                f"Document {payload.document_id} has no text to extract from",
                code="empty_input",
                retryable=False,
            )
        prompt = self._prompts.extraction_template.format(
            domain_instructions=self._prompts.domain_instructions(hint.domain),
            profile=describe_hint(hint),
            document_text=self._clip(payload.text),
            json_schema=self._prompts.extraction_schema_text,
        )
        raw = await self._call(prompt, self._prompts.extraction_schema, ())
        result = build_extraction_result(parse_json_object(raw), fallback_text=payload.text)
        Log.info(
            f"{self.stage.value} extracted {len(result.entities)} entities from document "
            f"{payload.document_id} (confidence {result.confidence:.2f})"
        )
        return result

    async def _answer(self, payload: ExtractionPayload, hint: ProfileHint) -> ExtractionResult:
        if not payload.text.strip():
            raise AdapterError(
                f"No context to answer from for document {payload.document_id}",
                code="empty_input",
                retryable=False,
            )
        prompt = self._prompts.question_template.format(
            domain_instructions=self._prompts.domain_instructions(hint.domain),
            context=self._clip(payload.text),
            question=payload.question,
            json_schema=self._prompts.answer_schema_text,
        )
        raw = await self._call(prompt, self._prompts.answer_schema, ())
        answer, confidence = build_answer(parse_json_object(raw))
        return ExtractionResult(text=answer, confidence=confidence)

    async def _call(
        self,
        prompt: str,
        schema: dict[str, object],
        images: tuple[bytes, ...],
    ) -> str:
        Log.debug(f"{self.stage.value} prompt:\n{prompt}")
        raw = await self._client.create_chat_completion(
            model=self._model,
            temperature=self._temperature,
            system_prompt=self._prompts.system_prompt,
            user_prompt=prompt,
            json_schema=schema if self.strict_schema else None,
            images=images,
        )
        Log.debug(f"{self.stage.value} raw response:\n{raw}")
        return raw

    def _clip(self, text: str) -> str:
        return text[: self._max_input_chars]


class ReasoningExtractor(LlmExtractionAdapter):
    """High-capability reasoning model; schema is described in the prompt only."""

    stage = Stage.REASONING
    strict_schema = False


class StructuredExtractor(LlmExtractionAdapter):
    """Fast model constrained by a strict JSON schema."""

    stage = Stage.FAST_STRUCTURED
    strict_schema = True


class VisionOcrExtractor(LlmExtractionAdapter):
    """Vision model transcribing page images. One call per page."""

    stage = Stage.VISION_OCR
    strict_schema = True

    async def extract(self, payload: ExtractionPayload, hint: ProfileHint) -> ExtractionResult:
        if not payload.page_images:
            raise AdapterError(
                f"Document {payload.document_id} has no page images to OCR",
                code="no_page_images",
                retryable=False,
            )
        if payload.page_index is not None:
            page_label = f"page {payload.page_index + 1} of the document"
        else:
            page_label = "the document"
        prompt = self._prompts.ocr_template.format(
            domain_instructions=self._prompts.domain_instructions(hint.domain),
            page_label=page_label,
            json_schema=self._prompts.extraction_schema_text,
        )
        raw = await self._call(prompt, self._prompts.extraction_schema, payload.page_images)
        return build_extraction_result(parse_json_object(raw))


def describe_hint(hint: ProfileHint) -> str:
    return json.dumps(
        {
            "document_type": hint.document_type,
            "complexity": hint.structural_complexity.value,
            "has_tables": hint.has_tables,
            "has_handwriting": hint.has_handwriting,
            "language": hint.language,
        }
    )
