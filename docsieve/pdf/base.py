from abc import ABC, abstractmethod


class BasePdfExtractor(ABC):
    """Contract for all PDF text extraction and page rendering adapters.

    Args:
        render_dpi: Resolution of the page images produced by ``render_pages``.
    """

    def __init__(self, render_dpi: int = 150) -> None:
        if render_dpi < 1:
            raise ValueError("render_dpi must be positive")
        self.render_dpi = render_dpi

    def extract(self, pdf_bytes: bytes) -> str:
        """Extract plain text from PDF bytes as a single normalized string."""
        return "\n".join(self.extract_pages(pdf_bytes)).strip()

    @abstractmethod
    def extract_pages(self, pdf_bytes: bytes) -> list[str]:
        """Extract the text layer of every page, in page order.

        Args:
            pdf_bytes: Raw PDF file content.

        Returns:
            One string per page; empty for pages without a text layer.

        Raises:
            PdfExtractionError: if extraction fails for any reason.
        """

    @abstractmethod
    def render_pages(self, pdf_bytes: bytes) -> list[bytes]:
        """Render every page to a PNG image at ``render_dpi``, in page order.

        Raises:
            PdfExtractionError: if rendering fails for any reason.
        """
