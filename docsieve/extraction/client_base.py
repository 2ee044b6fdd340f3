from abc import ABC, abstractmethod


class BaseExtractionClient(ABC):
    """Contract for provider-specific chat completion clients."""

    @abstractmethod
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
        """Return provider response as plain text.

        Raises:
            AdapterError: with ``retryable`` set from the provider failure kind.
        """
