"""Turns raw document bytes into per-page text and, on demand, page images."""

from dataclasses import dataclass, field

import pymupdf

from docsieve.pdf.base import BasePdfExtractor
from docsieve.pdf.exceptions import PdfExtractionError
from docsieve.pipeline.exceptions import EmptyDocumentError, UnsupportedMimeTypeError

# Average characters per page below which a PDF counts as scanned.
MIN_CHARS_PER_PAGE = 50

IMAGE_FILETYPES: dict[str, str] = {
    "image/png": "png",
    "image/jpeg": "jpeg",
    "image/tiff": "tiff",
}


@dataclass
class InspectedDocument:
    mime_type: str
    page_texts: list[str]
    page_count: int
    page_images: list[bytes] | None = field(default=None, repr=False)

    @property
    def renderable(self) -> bool:
        return self.mime_type != "text/plain"

    @property
    def has_text_layer(self) -> bool:
        chars = sum(len(t.strip()) for t in self.page_texts)
        return self.page_count > 0 and chars / self.page_count >= MIN_CHARS_PER_PAGE


class DocumentInspector:
    """Reads text layers up front; renders page images only when asked."""

    def __init__(self, pdf_extractor: BasePdfExtractor) -> None:
        self._pdf_extractor = pdf_extractor

    def inspect(self, mime_type: str, raw_bytes: bytes) -> InspectedDocument:
        """Read per-page text for a supported mime type.

        Raises:
            UnsupportedMimeTypeError: for mime types without an extraction path.
            EmptyDocumentError: if the document has no pages or no content.
            PdfExtractionError: if the file cannot be opened.
        """
        if not raw_bytes:
            raise EmptyDocumentError("Document file is empty")

        if mime_type == "application/pdf":
            page_texts = self._pdf_extractor.extract_pages(raw_bytes)
            if not page_texts:
                raise EmptyDocumentError("PDF has no pages")
            return InspectedDocument(mime_type, page_texts, len(page_texts))

        if mime_type == "text/plain":
            text = raw_bytes.decode("utf-8", errors="replace").strip()
            if not text:
                raise EmptyDocumentError("Text document is blank")
            return InspectedDocument(mime_type, [text], 1, page_images=[])

        if mime_type in IMAGE_FILETYPES:
            images = self._image_pages(mime_type, raw_bytes)
            if not images:
                raise EmptyDocumentError("Image has no frames")
            return InspectedDocument(mime_type, [""] * len(images), len(images), images)

        raise UnsupportedMimeTypeError(f"mime type '{mime_type}' is not supported")

    def page_images(self, inspected: InspectedDocument, raw_bytes: bytes) -> list[bytes]:
        """PNG image per page, rendered once and kept on the inspected document."""
        if inspected.page_images is None:
            inspected.page_images = self._pdf_extractor.render_pages(raw_bytes)
        return inspected.page_images

    def first_page_image(self, inspected: InspectedDocument, raw_bytes: bytes) -> bytes | None:
        images = self.page_images(inspected, raw_bytes)
        return images[0] if images else None

    @staticmethod
    def _image_pages(mime_type: str, raw_bytes: bytes) -> list[bytes]:
        try:
            with pymupdf.open(stream=raw_bytes, filetype=IMAGE_FILETYPES[mime_type]) as doc:  # type: ignore[no-untyped-call]
                return [page.get_pixmap().tobytes("png") for page in doc]
        except Exception as exc:
            raise PdfExtractionError(f"Cannot read {mime_type} image: {exc}") from exc
