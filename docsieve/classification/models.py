from dataclasses import dataclass


@dataclass(frozen=True)
class DocumentPreview:
    """Sampled view of a document, enough to classify it without a full read."""

    mime_type: str
    file_size_bytes: int
    text_sample: str = ""
    first_page_image: bytes | None = None
    page_count: int | None = None
    has_text_layer: bool = False
