from typing import ClassVar

from docsieve.config.settings import Settings
from docsieve.extraction.base import BaseExtractionAdapter
from docsieve.extraction.client_base import BaseExtractionClient
from docsieve.extraction.example_client_adapter import ExampleClientAdapter
from docsieve.extraction.llm_adapter import (
    ReasoningExtractor,
    StructuredExtractor,
    VisionOcrExtractor,
)
from docsieve.extraction.openai_client_adapter import OpenAIClientAdapter
from docsieve.extraction.prompt_loader import PromptLibrary
from docsieve.pipeline.models import Stage


class ExtractorFactory:
    """Creates the configured extraction client and the three stage adapters."""

    OPENAI_COMPATIBLE_BASE_URLS: ClassVar[dict[str, str]] = {
        "openrouter": "https://openrouter.ai/api/v1",
        "groq": "https://api.groq.com/openai/v1",
        "together": "https://api.together.xyz/v1",
        "deepseek": "https://api.deepseek.com/v1",
        "ollama": "http://localhost:11434/v1",
    }

    @classmethod
    def create_client(cls, settings: Settings) -> BaseExtractionClient:
        """Create the provider client from application settings."""
        provider = settings.extraction_provider.lower()
        if provider == "example":
            return ExampleClientAdapter()
        return OpenAIClientAdapter(
            api_key=settings.extraction_api_key,
            timeout_seconds=settings.extraction_timeout_seconds,
            base_url=cls._resolve_base_url(provider, settings),
        )

    @classmethod
    def create_adapters(
        cls,
        settings: Settings,
        client: BaseExtractionClient | None = None,
        prompts: PromptLibrary | None = None,
    ) -> dict[Stage, BaseExtractionAdapter]:
        """Create one adapter per cascade stage sharing a single client."""
        client = client if client is not None else cls.create_client(settings)
        prompts = prompts if prompts is not None else PromptLibrary()
        return {
            Stage.REASONING: ReasoningExtractor(
                client=client,
                model=settings.reasoning_model_name,
                prompts=prompts,
                temperature=None,
                max_input_chars=settings.max_input_chars,
            ),
            Stage.FAST_STRUCTURED: StructuredExtractor(
                client=client,
                model=settings.structured_model_name,
                prompts=prompts,
                temperature=0.0,
                max_input_chars=settings.max_input_chars,
            ),
            Stage.VISION_OCR: VisionOcrExtractor(
                client=client,
                model=settings.vision_model_name,
                prompts=prompts,
                temperature=0.0,
                max_input_chars=settings.max_input_chars,
            ),
        }

    @classmethod
    def _resolve_base_url(cls, provider: str, settings: Settings) -> str | None:
        if provider == "openai":
            return None
        if provider == "openai_compatible":
            url = (settings.extraction_base_url or "").strip()
            if not url:
                raise ValueError(
                    "extraction_base_url is required for "
                    "extraction_provider=openai_compatible"
                )
            return url
        default_base_url = cls.OPENAI_COMPATIBLE_BASE_URLS.get(provider)
        if default_base_url is not None:
            return settings.extraction_base_url.strip() or default_base_url
        supported = [
            "example",
            "openai",
            "openai_compatible",
            *sorted(cls.OPENAI_COMPATIBLE_BASE_URLS),
        ]
        raise ValueError(
            f"Unknown extraction provider '{provider}'. Choose from: {supported}"
        )
