from docsieve.config.settings import Settings
from docsieve.logging.logger import Log
from docsieve.pdf.base import BasePdfExtractor
from docsieve.pdf.pdfplumber_adapter import PdfPlumberAdapter
from docsieve.pdf.pymupdf_adapter import PyMuPdfAdapter


class PdfExtractorFactory:
    """Builds the configured PDF engine, rendering pages at ``pdf_render_dpi``."""

    ENGINES: dict[str, type[BasePdfExtractor]] = {
        "pdfplumber": PdfPlumberAdapter,
        "pymupdf": PyMuPdfAdapter,
    }

    @classmethod
    def create(cls, settings: Settings) -> BasePdfExtractor:
        name = settings.pdf_engine.strip().lower()
        engine = cls.ENGINES.get(name)
        if engine is None:
            raise ValueError(f"Unknown PDF engine '{name}'. Choose from: {sorted(cls.ENGINES)}")
        Log.debug(f"PDF engine {name}, rendering pages at {settings.pdf_render_dpi} dpi")
        return engine(render_dpi=settings.pdf_render_dpi)
