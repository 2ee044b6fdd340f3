import base64
from typing import Any

import httpx
import openai

from docsieve.extraction.client_base import BaseExtractionClient
from docsieve.extraction.exceptions import AdapterError


class OpenAIClientAdapter(BaseExtractionClient):
    """Extraction client adapter built on the OpenAI-compatible chat API."""

    def __init__(
        self,
        *,
        api_key: str,
        timeout_seconds: int,
        base_url: str | None = None,
    ) -> None:
        self._client = openai.AsyncOpenAI(
            api_key=api_key,
            timeout=timeout_seconds,
            base_url=base_url,
            max_retries=0,
        )

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
        request: dict[str, Any] = {
            "model": model,
            "response_format": self._response_format(json_schema),
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": self._user_content(user_prompt, images)},
            ],
        }
        if temperature is not None:
            request["temperature"] = temperature

        try:
            response = await self._client.chat.completions.create(**request)
        except openai.RateLimitError as exc:
            raise AdapterError(
                f"AI provider rate limit: {exc}", code="rate_limited", retryable=True
            ) from exc
        except openai.InternalServerError as exc:
            raise AdapterError(
                f"AI provider server error: {exc}", code="server_error", retryable=True
            ) from exc
        except openai.APIStatusError as exc:
            raise AdapterError(
                f"AI provider rejected request ({exc.status_code}): {exc}",
                code="provider_rejected",
                retryable=False,
            ) from exc
        except (openai.APIConnectionError, httpx.ConnectError, httpx.TimeoutException) as exc:
            raise AdapterError(
                f"AI provider network error: {exc}", code="network_error", retryable=True
            ) from exc
        except openai.APIError as exc:
            raise AdapterError(
                f"AI provider API error: {exc}", code="api_error", retryable=True
            ) from exc

        if not response.choices:
            raise AdapterError("AI returned no choices", code="empty_response", retryable=True)
        content = response.choices[0].message.content
        if content is None:
            raise AdapterError("AI returned empty response", code="empty_response", retryable=True)
        return content

    @staticmethod
    def _response_format(json_schema: dict[str, object] | None) -> dict[str, object]:
        if json_schema is None:
            return {"type": "json_object"}
        return {
            "type": "json_schema",
            "json_schema": {
                "name": str(json_schema.get("title", "extraction_result")),
                "strict": True,
                "schema": json_schema,
            },
        }

    @staticmethod
    def _user_content(user_prompt: str, images: tuple[bytes, ...]) -> str | list[dict[str, Any]]:
        if not images:
            return user_prompt
        parts: list[dict[str, Any]] = [{"type": "text", "text": user_prompt}]
        for image in images:
            encoded = base64.b64encode(image).decode("ascii")
            parts.append(
                {
                    "type": "image_url",
                    "image_url": {"url": f"data:image/png;base64,{encoded}"},
                }
            )
        return parts
