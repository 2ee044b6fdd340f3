import json
from unittest.mock import AsyncMock

import pytest

from docsieve.extraction.exceptions import AdapterError
from docsieve.extraction.llm_adapter import (
    ReasoningExtractor,
    StructuredExtractor,
    VisionOcrExtractor,
    describe_hint,
)
from docsieve.extraction.models import ExtractionPayload, ProfileHint
from docsieve.extraction.prompt_loader import PromptLibrary
from docsieve.pipeline.models import StructuralComplexity

EXTRACTION = {
    "text": "transcribed",
    "summary": "an invoice",
    "entities": [{"type": "invoice_number", "value": "4711", "confidence": 0.95}],
    "confidence": 0.9,
}


def _client(response: dict | str) -> AsyncMock:  # type: ignore[type-arg]
    client = AsyncMock()
    client.create_chat_completion.return_value = (
        response if isinstance(response, str) else json.dumps(response)
    )
    return client


def _kwargs(client: AsyncMock) -> dict:  # type: ignore[type-arg]
    return client.create_chat_completion.await_args.kwargs


class TestStructuredExtractor:
    @pytest.mark.asyncio
    async def test_extracts_entities_with_strict_schema(self) -> None:
        client = _client(EXTRACTION)
        adapter = StructuredExtractor(client=client, model="fast", prompts=PromptLibrary())

        result = await adapter.extract(
            ExtractionPayload(document_id=1, mime_type="application/pdf", text="Invoice 4711"),
            ProfileHint(),
        )

        assert result.text == "Invoice 4711"
        assert result.entities[0].value == "4711"
        assert result.confidence == 0.9
        kwargs = _kwargs(client)
        assert kwargs["model"] == "fast"
        assert kwargs["json_schema"]["title"] == "extraction_result"
        assert kwargs["images"] == ()
        assert "Invoice 4711" in kwargs["user_prompt"]

    @pytest.mark.asyncio
    async def test_domain_instructions_are_in_prompt(self) -> None:
        prompts = PromptLibrary()
        client = _client(EXTRACTION)
        adapter = StructuredExtractor(client=client, model="fast", prompts=prompts)

        await adapter.extract(
            ExtractionPayload(document_id=1, mime_type="application/pdf", text="t"),
            ProfileHint(domain="medical"),
        )

        assert prompts.domain_instructions("medical") in _kwargs(client)["user_prompt"]

    @pytest.mark.asyncio
    async def test_input_is_clipped(self) -> None:
        client = _client(EXTRACTION)
        adapter = StructuredExtractor(
            client=client, model="fast", prompts=PromptLibrary(), max_input_chars=10
        )
        await adapter.extract(
            ExtractionPayload(document_id=1, mime_type="text/plain", text="x" * 50),
            ProfileHint(),
        )
        assert "x" * 11 not in _kwargs(client)["user_prompt"]

    @pytest.mark.asyncio
    async def test_empty_input_is_permanent(self) -> None:
        adapter = StructuredExtractor(client=_client(EXTRACTION), model="m", prompts=PromptLibrary())
        with pytest.raises(AdapterError) as exc_info:
            await adapter.extract(
                ExtractionPayload(document_id=1, mime_type="application/pdf"), ProfileHint()
            )
        assert exc_info.value.retryable is False
        assert exc_info.value.code == "empty_input"

    @pytest.mark.asyncio
    async def test_page_images_without_text_are_not_extractable(self) -> None:
        client = _client(EXTRACTION)
        adapter = StructuredExtractor(client=client, model="m", prompts=PromptLibrary())
        with pytest.raises(AdapterError) as exc_info:
            await adapter.extract(
                ExtractionPayload(
                    document_id=1, mime_type="application/pdf", page_images=(b"1", b"2")
                ),
                ProfileHint(),
            )
        assert exc_info.value.code == "empty_input"
        client.create_chat_completion.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invalid_json_is_retryable(self) -> None:
        adapter = StructuredExtractor(client=_client("oops"), model="m", prompts=PromptLibrary())
        with pytest.raises(AdapterError) as exc_info:
            await adapter.extract(
                ExtractionPayload(document_id=1, mime_type="text/plain", text="t"), ProfileHint()
            )
        assert exc_info.value.retryable is True


class TestReasoningExtractor:
    @pytest.mark.asyncio
    async def test_schema_is_only_in_prompt(self) -> None:
        client = _client(EXTRACTION)
        adapter = ReasoningExtractor(
            client=client, model="reasoner", prompts=PromptLibrary(), temperature=None
        )
        await adapter.extract(
            ExtractionPayload(document_id=1, mime_type="text/plain", text="t"), ProfileHint()
        )
        kwargs = _kwargs(client)
        assert kwargs["json_schema"] is None
        assert kwargs["temperature"] is None
        assert '"entities"' in kwargs["user_prompt"]

    @pytest.mark.asyncio
    async def test_answers_questions(self) -> None:
        client = _client({"answer": "EUR 120.00", "confidence": 0.8})
        adapter = ReasoningExtractor(client=client, model="reasoner", prompts=PromptLibrary())
        result = await adapter.extract(
            ExtractionPayload(
                document_id=1,
                mime_type="application/pdf",
                text="Total: EUR 120.00",
                question="What is the total?",
            ),
            ProfileHint(),
        )
        assert result.text == "EUR 120.00"
        assert result.confidence == 0.8
        prompt = _kwargs(client)["user_prompt"]
        assert "What is the total?" in prompt
        assert "Total: EUR 120.00" in prompt


class TestVisionOcrExtractor:
    @pytest.mark.asyncio
    async def test_transcribes_page(self) -> None:
        client = _client(EXTRACTION)
        adapter = VisionOcrExtractor(client=client, model="vision", prompts=PromptLibrary())
        result = await adapter.extract(
            ExtractionPayload(
                document_id=1, mime_type="application/pdf", page_images=(b"png",), page_index=2
            ),
            ProfileHint(),
        )
        assert result.text == "transcribed"
        kwargs = _kwargs(client)
        assert kwargs["images"] == (b"png",)
        assert "page 3 of the document" in kwargs["user_prompt"]

    @pytest.mark.asyncio
    async def test_requires_page_images(self) -> None:
        adapter = VisionOcrExtractor(client=_client(EXTRACTION), model="v", prompts=PromptLibrary())
        with pytest.raises(AdapterError) as exc_info:
            await adapter.extract(
                ExtractionPayload(document_id=1, mime_type="text/plain", text="t"), ProfileHint()
            )
        assert exc_info.value.code == "no_page_images"
        assert exc_info.value.retryable is False


class TestDescribeHint:
    def test_is_json(self) -> None:
        hint = ProfileHint(structural_complexity=StructuralComplexity.COMPLEX, has_tables=True)
        data = json.loads(describe_hint(hint))
        assert data["complexity"] == "complex"
        assert data["has_tables"] is True
