import pytest

from docsieve.pdf.exceptions import PdfExtractionError
from docsieve.pdf.pymupdf_adapter import PyMuPdfAdapter
from docsieve.pipeline.exceptions import EmptyDocumentError, UnsupportedMimeTypeError
from docsieve.pipeline.inspection import DocumentInspector, InspectedDocument


@pytest.fixture()
def inspector() -> DocumentInspector:
    return DocumentInspector(PyMuPdfAdapter(render_dpi=72))


class TestInspectPdf:
    def test_text_pdf_has_text_layer(
        self, inspector: DocumentInspector, text_pdf_bytes: bytes
    ) -> None:
        inspected = inspector.inspect("application/pdf", text_pdf_bytes)
        assert inspected.page_count == 1
        assert inspected.has_text_layer is True
        assert inspected.renderable is True
        assert inspected.page_images is None

    def test_scanned_pdf_has_no_text_layer(
        self, inspector: DocumentInspector, scanned_pdf_bytes: bytes
    ) -> None:
        inspected = inspector.inspect("application/pdf", scanned_pdf_bytes)
        assert inspected.page_count == 3
        assert inspected.has_text_layer is False

    def test_short_text_does_not_count_as_text_layer(
        self, inspector: DocumentInspector, sample_pdf_bytes: bytes
    ) -> None:
        assert inspector.inspect("application/pdf", sample_pdf_bytes).has_text_layer is False

    def test_page_images_are_rendered_once(
        self, inspector: DocumentInspector, scanned_pdf_bytes: bytes
    ) -> None:
        inspected = inspector.inspect("application/pdf", scanned_pdf_bytes)
        images = inspector.page_images(inspected, scanned_pdf_bytes)
        assert len(images) == 3
        assert inspector.page_images(inspected, scanned_pdf_bytes) is images
        assert inspector.first_page_image(inspected, scanned_pdf_bytes) == images[0]


class TestInspectOtherTypes:
    def test_plain_text_is_not_renderable(self, inspector: DocumentInspector) -> None:
        inspected = inspector.inspect("text/plain", b"  Delivery note for order 99  ")
        assert inspected.page_texts == ["Delivery note for order 99"]
        assert inspected.renderable is False
        assert inspector.first_page_image(inspected, b"") is None

    def test_image_becomes_single_png_page(
        self, inspector: DocumentInspector, sample_pdf_bytes: bytes
    ) -> None:
        png = PyMuPdfAdapter(render_dpi=72).render_pages(sample_pdf_bytes)[0]
        inspected = inspector.inspect("image/png", png)
        assert inspected.page_count == 1
        assert inspected.has_text_layer is False
        assert inspected.page_images is not None
        assert inspected.page_images[0].startswith(b"\x89PNG")

    def test_broken_image_raises(self, inspector: DocumentInspector) -> None:
        with pytest.raises(PdfExtractionError):
            inspector.inspect("image/png", b"not an image")


class TestInspectRaises:
    def test_empty_bytes(self, inspector: DocumentInspector) -> None:
        with pytest.raises(EmptyDocumentError):
            inspector.inspect("application/pdf", b"")

    def test_blank_text(self, inspector: DocumentInspector) -> None:
        with pytest.raises(EmptyDocumentError):
            inspector.inspect("text/plain", b"   \n")

    def test_unsupported_mime_type(self, inspector: DocumentInspector) -> None:
        with pytest.raises(UnsupportedMimeTypeError):
            inspector.inspect("video/mp4", b"data")


class TestInspectedDocument:
    def test_text_layer_uses_average_per_page(self) -> None:
        inspected = InspectedDocument("application/pdf", ["x" * 120, ""], 2)
        assert inspected.has_text_layer is True
        assert InspectedDocument("application/pdf", ["x" * 90, ""], 2).has_text_layer is False
