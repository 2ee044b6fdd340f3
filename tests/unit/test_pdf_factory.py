from unittest.mock import patch

import pytest

from docsieve.pdf.factory import PdfExtractorFactory
from docsieve.pdf.pdfplumber_adapter import PdfPlumberAdapter
from docsieve.pdf.pymupdf_adapter import PyMuPdfAdapter


def _make_settings(pdf_engine: str, pdf_render_dpi: int = 150):  # type: ignore[no-untyped-def]
    """Create a minimal Settings-like object with only the PDF fields."""
    with patch("docsieve.config.settings.Settings") as mock_cls:
        settings = mock_cls.return_value
        settings.pdf_engine = pdf_engine
        settings.pdf_render_dpi = pdf_render_dpi
        return settings


class TestPdfExtractorFactory:
    def test_creates_pdfplumber_adapter(self) -> None:
        adapter = PdfExtractorFactory.create(_make_settings("pdfplumber"))
        assert isinstance(adapter, PdfPlumberAdapter)

    def test_creates_pymupdf_adapter(self) -> None:
        adapter = PdfExtractorFactory.create(_make_settings("pymupdf"))
        assert isinstance(adapter, PyMuPdfAdapter)

    def test_engine_name_is_normalized(self) -> None:
        adapter = PdfExtractorFactory.create(_make_settings(" PyMuPDF "))
        assert isinstance(adapter, PyMuPdfAdapter)

    @pytest.mark.parametrize("engine", ["pdfplumber", "pymupdf"])
    def test_passes_render_dpi_to_engine(self, engine: str) -> None:
        adapter = PdfExtractorFactory.create(_make_settings(engine, pdf_render_dpi=200))
        assert adapter.render_dpi == 200

    def test_raises_for_unknown_engine(self) -> None:
        with pytest.raises(ValueError, match="Unknown PDF engine 'unknown'"):
            PdfExtractorFactory.create(_make_settings("unknown"))
