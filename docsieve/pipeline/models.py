from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class Stage(str, Enum):
    """Extraction strategies, listed in cascade priority order."""

    REASONING = "reasoning"
    FAST_STRUCTURED = "fast_structured"
    VISION_OCR = "vision_ocr"


DEFAULT_STAGE_ORDER: tuple[Stage, ...] = (
    Stage.REASONING,
    Stage.FAST_STRUCTURED,
    Stage.VISION_OCR,
)


class DocumentStatus(str, Enum):
    QUEUED = "queued"
    CLASSIFYING = "classifying"
    EXTRACTING = "extracting"
    CHUNKED_RETRIEVAL = "chunked_retrieval"
    COMPLETED = "completed"
    FAILED = "failed"
    PARTIAL = "partial"


TERMINAL_STATUSES = frozenset({DocumentStatus.COMPLETED, DocumentStatus.FAILED})


class StructuralComplexity(str, Enum):
    SIMPLE = "simple"
    STRUCTURED = "structured"
    COMPLEX = "complex"


class AttemptOutcome(str, Enum):
    SUCCESS = "success"
    TRANSIENT_FAILURE = "transient_failure"
    PERMANENT_FAILURE = "permanent_failure"


class PageStatus(str, Enum):
    OK = "ok"
    FAILED = "failed"


@dataclass(frozen=True)
class Entity:
    """A single extracted field."""

    type: str
    value: str
    confidence: float | None = None


@dataclass(frozen=True)
class DocumentProfile:
    """Classifier output. Owned by the document for its lifetime."""

    has_text_layer: bool
    estimated_page_count: int
    structural_complexity: StructuralComplexity
    has_tables: bool
    has_handwriting: bool
    recommended_entry_stage: Stage
    source: str = "model"
    document_type: str = "other"
    language: str = "en"


@dataclass(frozen=True)
class ProcessingAttempt:
    """One call of one stage. Never mutated after it is written."""

    stage: Stage
    attempt_number: int
    started_at: datetime
    outcome: AttemptOutcome
    error_detail: str | None = None
    error_code: str | None = None
    duration_ms: float = 0.0
    run_id: str | None = None


@dataclass(frozen=True)
class PageResult:
    page_index: int
    text: str
    ocr_confidence: float
    status: PageStatus
    attempts: int = 0
    error_detail: str | None = None
    entities: tuple[Entity, ...] = ()


@dataclass(frozen=True)
class Chunk:
    """A window of a document's final text with its keyword counts."""

    id: str
    document_id: int
    index: int
    start: int
    end: int
    text: str
    keywords: dict[str, int] = field(default_factory=dict, hash=False)


@dataclass(frozen=True)
class ScoredChunk:
    chunk_id: str
    index: int
    score: float


@dataclass(frozen=True)
class RetrievalResult:
    """Chunks chosen for one query, in selection (score) order."""

    selected: tuple[ScoredChunk, ...]
    used_fallback: bool = False

    @property
    def ordered_chunk_ids(self) -> list[str]:
        return [c.chunk_id for c in sorted(self.selected, key=lambda c: c.index)]


@dataclass
class Document:
    """Domain model for an uploaded document and its processing state."""

    id: int
    uuid: str
    user_id: int
    storage_disk: str
    mime_type: str
    file_size_bytes: int
    file_hash_sha256: str
    domain: str = "general"
    page_count: int | None = None
    status: DocumentStatus = DocumentStatus.QUEUED
    text: str = ""
    winning_stage: Stage | None = None
    confidence: float | None = None
    entities: list[Entity] = field(default_factory=list)
    failed_pages: list[int] = field(default_factory=list)
    chunks: list[Chunk] = field(default_factory=list)
    chunks_text_hash: str | None = None
    error_message: str | None = None
    updated_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


@dataclass
class DocumentAnalysis:
    """What process_document returns to the surrounding application."""

    document_id: int
    status: DocumentStatus
    winning_stage: Stage | None
    confidence: float | None
    text: str
    run_id: str | None = None
    entities: list[Entity] = field(default_factory=list)
    profile: DocumentProfile | None = None
    attempts: list[ProcessingAttempt] = field(default_factory=list)
    failed_pages: list[int] = field(default_factory=list)
    page_results: list[PageResult] = field(default_factory=list)
    chunk_count: int = 0
    error_message: str | None = None


@dataclass(frozen=True)
class QueryAnswer:
    answer: str
    confidence: float
    chunks_used: list[str]
    stage: Stage | None = None


@dataclass(frozen=True)
class CachedOcrResult:
    """OCR output stored by file hash so identical uploads skip the OCR calls."""

    file_hash_sha256: str
    page_results: tuple[PageResult, ...]
    cached_at: datetime | None = None
