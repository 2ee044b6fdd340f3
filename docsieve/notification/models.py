from dataclasses import dataclass, field
from datetime import datetime, timezone


@dataclass(frozen=True)
class ProgressEvent:
    document_id: int
    stage: str
    progress_percent: int
    message: str
    emitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_payload(self) -> dict[str, object]:
        return {
            "document_id": self.document_id,
            "stage": self.stage,
            "progress": self.progress_percent,
            "message": self.message,
            "emitted_at": self.emitted_at.isoformat(),
        }
