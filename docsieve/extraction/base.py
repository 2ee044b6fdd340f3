from abc import ABC, abstractmethod
from typing import ClassVar

from docsieve.extraction.models import ExtractionPayload, ExtractionResult, ProfileHint
from docsieve.pipeline.models import Stage


class BaseExtractionAdapter(ABC):
    """Contract for all extraction adapters.

    Adapters wrap one external extraction capability and hold no
    orchestration logic; the cascade treats them as interchangeable.
    """

    stage: ClassVar[Stage]

    @abstractmethod
    async def extract(self, payload: ExtractionPayload, hint: ProfileHint) -> ExtractionResult:
        """Extract text, entities and a confidence score from a document.

        Args:
            payload: Document text and/or page images, or a question with
                     its context when ``payload.question`` is set.
            hint: Classifier signals and the domain used for prompt selection.

        Returns:
            ExtractionResult with the adapter's own confidence score.

        Raises:
            AdapterError: on any failure, flagged retryable or not.
        """
