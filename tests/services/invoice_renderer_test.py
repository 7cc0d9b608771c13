from datetime import datetime, timezone
from pathlib import Path

from domain.invoice import InvoiceDocument, InvoiceLine
from services.invoice_renderer import PdfInvoiceRenderer, invoice_filename, write_invoice
from tests.constants import AXIO


def _document(line_count: int = 11) -> InvoiceDocument:
    lines = [InvoiceLine(f"Line {index}", index * 1000) for index in range(line_count - 1)]
    lines.append(InvoiceLine("Sold Price", 1_341_992, emphasized=True))
    return InvoiceDocument(heading="Toyota Axio", chassis_no=AXIO, lines=lines)


def test_render_produces_pdf_bytes() -> None:
    pdf_bytes = PdfInvoiceRenderer().render(_document())

    assert pdf_bytes.startswith(b"%PDF")
    assert pdf_bytes.rstrip().endswith(b"%%EOF")


def test_long_documents_still_render() -> None:
    short = PdfInvoiceRenderer().render(_document())
    long = PdfInvoiceRenderer().render(_document(line_count=80))

    assert long.startswith(b"%PDF")
    assert len(long) > len(short)


def test_invoice_filename_uses_epoch_millis() -> None:
    now = datetime(2025, 3, 1, 9, 0, 0, 250000, tzinfo=timezone.utc)

    assert invoice_filename(AXIO, now=now) == f"Tax-Invoice-{AXIO}-1740819600250.pdf"


def test_write_invoice_creates_directory(tmp_path: Path) -> None:
    now = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)

    path = write_invoice(b"%PDF-1.4", AXIO, tmp_path / "invoices", now=now)

    assert path.parent == tmp_path / "invoices"
    assert path.name == invoice_filename(AXIO, now=now)
    assert path.read_bytes() == b"%PDF-1.4"
