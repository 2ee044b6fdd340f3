from docsieve.extraction.base import BaseExtractionAdapter
from docsieve.extraction.exceptions import AdapterError
from docsieve.extraction.factory import ExtractorFactory
from docsieve.extraction.llm_adapter import (
    ReasoningExtractor,
    StructuredExtractor,
    VisionOcrExtractor,
)
from docsieve.extraction.models import ExtractionPayload, ExtractionResult, ProfileHint

__all__ = [
    "AdapterError",
    "BaseExtractionAdapter",
    "ExtractionPayload",
    "ExtractionResult",
    "ExtractorFactory",
    "ProfileHint",
    "ReasoningExtractor",
    "StructuredExtractor",
    "VisionOcrExtractor",
]
