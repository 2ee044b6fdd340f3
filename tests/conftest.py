import io
from collections.abc import Callable
from unittest.mock import AsyncMock

import pytest
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from docsieve.extraction.base import BaseExtractionAdapter
from docsieve.extraction.models import ExtractionPayload, ExtractionResult, ProfileHint
from docsieve.pipeline.models import Document, Stage

LOREM = (
    "Invoice number 4711 issued by Acme Logistics GmbH to Example Retail Ltd. "
    "Payment is due within thirty days of the invoice date."
)


@pytest.fixture()
def sample_pdf_bytes() -> bytes:
    """Generate a minimal single-page PDF with known text content."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Hello PDF World")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def multi_page_pdf_bytes() -> bytes:
    """Generate a two-page PDF with known text on each page."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, "Page one content")
    c.showPage()
    c.drawString(72, 720, "Page two content")
    c.save()
    return buf.getvalue()


@pytest.fixture()
def empty_pdf_bytes() -> bytes:
    """Generate a valid PDF with no text content (blank page)."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.showPage()
    c.save()
    return buf.getvalue()


@pytest.fixture()
def text_pdf_bytes() -> bytes:
    """Generate a single-page PDF with enough text to count as a text layer."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.drawString(72, 720, LOREM[:70])
    c.drawString(72, 700, LOREM[70:])
    c.save()
    return buf.getvalue()


@pytest.fixture()
def scanned_pdf_bytes() -> bytes:
    """Generate a three-page PDF without any text, like a scan."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    for _ in range(3):
        c.rect(72, 600, 200, 100, fill=1)
        c.showPage()
    c.save()
    return buf.getvalue()


class ScriptedAdapter(BaseExtractionAdapter):
    """Extraction adapter that replays a script of results and exceptions.

    The last script entry repeats once the script runs out.
    """

    def __init__(self, stage: Stage, script: list[ExtractionResult | Exception]) -> None:
        self.stage = stage  # type: ignore[misc]
        self._script = list(script)
        self.payloads: list[ExtractionPayload] = []

    async def extract(self, payload: ExtractionPayload, hint: ProfileHint) -> ExtractionResult:
        self.payloads.append(payload)
        step = self._script.pop(0) if len(self._script) > 1 else self._script[0]
        if isinstance(step, Exception):
            raise step
        return step

    @property
    def call_count(self) -> int:
        return len(self.payloads)


@pytest.fixture()
def scripted_adapter() -> Callable[..., ScriptedAdapter]:
    def _make(stage: Stage, *script: ExtractionResult | Exception) -> ScriptedAdapter:
        return ScriptedAdapter(stage, list(script))

    return _make


@pytest.fixture()
def make_document() -> Callable[..., Document]:
    def _make(**overrides: object) -> Document:
        fields: dict[str, object] = {
            "id": 1,
            "uuid": "0f8fad5b-d9cb-469f-a165-70867728950e",
            "user_id": 7,
            "storage_disk": "local",
            "mime_type": "application/pdf",
            "file_size_bytes": 40_000,
            "file_hash_sha256": "a" * 64,
        }
        fields.update(overrides)
        return Document(**fields)  # type: ignore[arg-type]

    return _make


@pytest.fixture()
def no_sleep() -> AsyncMock:
    """Stand-in for asyncio.sleep so backoff costs no time."""
    return AsyncMock()
