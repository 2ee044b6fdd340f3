"""Example extraction client adapter.

Use this module as a reference when implementing new provider adapters.
Implement BaseExtractionClient and register the provider in ExtractorFactory.
"""

import json
from typing import ClassVar

from docsieve.extraction.client_base import BaseExtractionClient


class ExampleClientAdapter(BaseExtractionClient):
    """Example adapter that answers every schema with a fixed valid JSON object.

    No network calls. Useful for local development and tests.
    """

    DEFAULT_EXTRACTION: ClassVar[dict[str, object]] = {
        "text": "",
        "summary": "",
        "entities": [],
        "confidence": 0.5,
    }
    DEFAULT_ANSWER: ClassVar[dict[str, object]] = {
        "answer": "Not stated in the document.",
        "confidence": 0.5,
    }
    DEFAULT_CLASSIFICATION: ClassVar[dict[str, object]] = {
        "document_type": "other",
        "complexity": "simple",
        "has_tables": False,
        "has_handwriting": False,
        "language": "en",
        "page_count": 1,
    }

    def __init__(self) -> None:
        self.calls: list[dict[str, object]] = []

    async def create_chat_completion(
        self,
        *,
        model: str,
        temperature: float | None,
        system_prompt: str,
        user_prompt: str,
        json_schema: dict[str, object] | None,
        images: tuple[bytes, ...] = (),
    ) -> str:
        self.calls.append({"model": model, "images": len(images)})
        _ = temperature, system_prompt, user_prompt
        properties = (json_schema or {}).get("properties", {})
        if isinstance(properties, dict) and "answer" in properties:
            return json.dumps(self.DEFAULT_ANSWER)
        if isinstance(properties, dict) and "complexity" in properties:
            return json.dumps(self.DEFAULT_CLASSIFICATION)
        return json.dumps(self.DEFAULT_EXTRACTION)
