from __future__ import annotations

import io
import logging
from datetime import datetime, timezone
from pathlib import Path

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas

from domain.invoice import InvoiceDocument
from utils.formatting import format_whole_units

logger = logging.getLogger(__name__)

LABEL_X = 20 * mm
COLON_X = 130 * mm
VALUE_X = 135 * mm
RULE_END_X = 190 * mm
LINE_STEP = 6 * mm
TOP_MARGIN = 30 * mm
# Room kept free at the bottom of every page for the signature block.
SIGNATURE_HEIGHT = 40 * mm


class PdfInvoiceRenderer:
    """Render tax invoices to A4 PDF bytes."""

    def __init__(self, *, pagesize: tuple[float, float] = A4) -> None:
        self.pagesize = pagesize

    def render(self, document: InvoiceDocument) -> bytes:
        buffer = io.BytesIO()
        pdf = canvas.Canvas(buffer, pagesize=self.pagesize)
        pdf.setTitle(f"{document.title} {document.chassis_no}")
        _, height = self.pagesize

        y = self._draw_header(pdf, document, height)
        for line in document.lines:
            step = LINE_STEP + (2 * mm if line.emphasized else 0)
            if y - step < SIGNATURE_HEIGHT:
                pdf.showPage()
                y = height - TOP_MARGIN
            y -= 2 * mm if line.emphasized else 0

            if line.emphasized:
                pdf.setFont("Helvetica-Bold", 12)
            else:
                pdf.setFont("Helvetica", 10)
            pdf.drawString(LABEL_X, y, line.label)
            pdf.drawString(COLON_X, y, ":")
            pdf.drawString(VALUE_X, y, format_whole_units(line.amount))
            y -= LINE_STEP

        rule, label = document.signature
        pdf.setFont("Helvetica", 10)
        pdf.drawString(LABEL_X, 30 * mm, rule)
        pdf.setFont("Helvetica-Bold", 10)
        pdf.drawString(LABEL_X, 22 * mm, label)

        pdf.showPage()
        pdf.save()
        return buffer.getvalue()

    def _draw_header(self, pdf: canvas.Canvas, document: InvoiceDocument, height: float) -> float:
        width, _ = self.pagesize
        y = height - TOP_MARGIN
        pdf.setFont("Helvetica-Bold", 18)
        pdf.drawCentredString(width / 2, y, document.title)
        y -= 5 * mm
        pdf.line(LABEL_X, y, RULE_END_X, y)

        y -= 10 * mm
        pdf.setFont("Helvetica-Bold", 12)
        pdf.drawString(LABEL_X, y, document.heading)
        y -= LINE_STEP
        pdf.setFont("Helvetica", 10)
        pdf.drawString(LABEL_X, y, document.identity_line)
        y -= 10 * mm
        pdf.line(LABEL_X, y, RULE_END_X, y)
        return y - 8 * mm


def invoice_filename(chassis_no: str, *, now: datetime | None = None) -> str:
    ts = now or datetime.now(timezone.utc)
    return f"Tax-Invoice-{chassis_no}-{int(ts.timestamp() * 1000)}.pdf"


def write_invoice(pdf_bytes: bytes, chassis_no: str, out_dir: Path, *, now: datetime | None = None) -> Path:
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / invoice_filename(chassis_no, now=now)
    path.write_bytes(pdf_bytes)
    logger.info("Wrote tax invoice for %s to %s", chassis_no, path)
    return path


__all__ = ["PdfInvoiceRenderer", "invoice_filename", "write_invoice"]
