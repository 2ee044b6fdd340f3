import pymupdf

from docsieve.pdf.base import BasePdfExtractor
from docsieve.pdf.exceptions import PdfExtractionError


class PyMuPdfAdapter(BasePdfExtractor):
    """Reads and renders PDF pages using PyMuPDF."""

    def extract_pages(self, pdf_bytes: bytes) -> list[str]:
        try:
            with pymupdf.open(stream=pdf_bytes, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
                return [page.get_text().strip() for page in doc]
        except Exception as exc:
            raise PdfExtractionError(f"pymupdf extraction failed: {exc}") from exc

    def render_pages(self, pdf_bytes: bytes) -> list[bytes]:
        try:
            with pymupdf.open(stream=pdf_bytes, filetype="pdf") as doc:  # type: ignore[no-untyped-call]
                return [page.get_pixmap(dpi=self.render_dpi).tobytes("png") for page in doc]
        except Exception as exc:
            raise PdfExtractionError(f"pymupdf rendering failed: {exc}") from exc
