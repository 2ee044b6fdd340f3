"""Parses raw provider responses and enforces the result invariants."""

import json
from typing import Any

from docsieve.extraction.exceptions import AdapterError
from docsieve.extraction.models import ExtractionResult
from docsieve.pipeline.models import Entity

_MAX_ENTITIES = 500


def parse_json_object(raw: str) -> dict[str, Any]:
    """Parse a JSON object, tolerating a fenced code block around it.

    Raises:
        AdapterError: retryable, since another sample may be well formed.
    """
    cleaned = raw.strip()
    if cleaned.startswith("```"):
        lines = cleaned.splitlines()
        if lines and lines[0].startswith("```"):
            lines = lines[1:]
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        cleaned = "\n".join(lines)

    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise _invalid(f"Invalid JSON response: {exc}") from exc

    if not isinstance(parsed, dict):
        raise _invalid("JSON response must be an object")
    return parsed


def build_extraction_result(data: dict[str, Any], fallback_text: str = "") -> ExtractionResult:
    """Validate parsed extraction JSON and build an ExtractionResult.

    ``fallback_text`` is the document's own text layer; it wins over the
    model transcription when present.
    """
    text = data.get("text", "")
    if not isinstance(text, str):
        raise _invalid("'text' must be a string")
    summary = data.get("summary", "")
    if not isinstance(summary, str):
        raise _invalid("'summary' must be a string")
    confidence = _build_confidence(data.get("confidence"), "confidence")
    entities = _build_entities(data.get("entities", []))
    final_text = fallback_text if fallback_text.strip() else text
    return ExtractionResult(
        text=final_text,
        entities=entities,
        confidence=confidence,
        summary=summary,
    )


def build_answer(data: dict[str, Any]) -> tuple[str, float]:
    answer = data.get("answer")
    if not isinstance(answer, str) or not answer.strip():
        raise _invalid("'answer' must be a non-empty string")
    return answer.strip(), _build_confidence(data.get("confidence"), "confidence")


def _build_confidence(raw: Any, name: str) -> float:
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise _invalid(f"'{name}' must be a number")
    value = float(raw)
    # Some models answer on a 0-100 scale.
    if 1.0 < value <= 100.0:
        value /= 100.0
    if not 0.0 <= value <= 1.0:
        raise _invalid(f"'{name}' must be between 0 and 1, got {raw!r}")
    return value


def _build_entities(raw: Any) -> list[Entity]:
    if not isinstance(raw, list):
        raise _invalid("'entities' must be a list")
    if len(raw) > _MAX_ENTITIES:
        raise _invalid(f"Too many entities: {len(raw)} (max {_MAX_ENTITIES})")
    entities: list[Entity] = []
    for i, item in enumerate(raw):
        if not isinstance(item, dict):
            raise _invalid(f"Entity at index {i} must be an object")
        entity_type = item.get("type")
        if not entity_type or not isinstance(entity_type, str):
            raise _invalid(f"Entity at index {i}: 'type' must be a non-empty string")
        value = item.get("value")
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            value = str(value)
        if not isinstance(value, str):
            raise _invalid(f"Entity at index {i}: 'value' must be a string")
        confidence = item.get("confidence")
        entities.append(
            Entity(
                type=entity_type,
                value=value,
                confidence=(
                    _build_confidence(confidence, f"entities[{i}].confidence")
                    if confidence is not None
                    else None
                ),
            )
        )
    return entities


def _invalid(message: str) -> AdapterError:
    return AdapterError(message, code="invalid_response", retryable=True)
