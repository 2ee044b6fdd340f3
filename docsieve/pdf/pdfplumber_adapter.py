import io

import pdfplumber

from docsieve.pdf.base import BasePdfExtractor
from docsieve.pdf.exceptions import PdfExtractionError


class PdfPlumberAdapter(BasePdfExtractor):
    """Reads and renders PDF pages using pdfplumber."""

    def extract_pages(self, pdf_bytes: bytes) -> list[str]:
        try:
            with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
                return [(page.extract_text() or "").strip() for page in pdf.pages]
        except Exception as exc:
            raise PdfExtractionError(f"pdfplumber extraction failed: {exc}") from exc

    def render_pages(self, pdf_bytes: bytes) -> list[bytes]:
        try:
            images: list[bytes] = []
            with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
                for page in pdf.pages:
                    buf = io.BytesIO()
                    page.to_image(resolution=self.render_dpi).original.save(buf, format="PNG")
                    images.append(buf.getvalue())
            return images
        except Exception as exc:
            raise PdfExtractionError(f"pdfplumber rendering failed: {exc}") from exc
