from dataclasses import dataclass, field

from docsieve.pipeline.models import Entity, StructuralComplexity


@dataclass(frozen=True)
class ExtractionPayload:
    """Everything an adapter may send to its provider for one call."""

    document_id: int
    mime_type: str
    text: str = ""
    page_images: tuple[bytes, ...] = ()
    question: str | None = None
    page_index: int | None = None


@dataclass(frozen=True)
class ProfileHint:
    """Classifier signals and the domain key used to pick prompt instructions."""

    domain: str = "general"
    structural_complexity: StructuralComplexity = StructuralComplexity.SIMPLE
    has_tables: bool = False
    has_handwriting: bool = False
    document_type: str = "other"
    language: str = "en"


@dataclass(frozen=True)
class ExtractionResult:
    text: str
    entities: list[Entity] = field(default_factory=list)
    confidence: float = 0.0
    summary: str = ""
