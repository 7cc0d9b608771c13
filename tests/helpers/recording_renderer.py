from __future__ import annotations

from domain.invoice import InvoiceDocument

FAKE_PDF = b"%PDF-1.4 test"


class RecordingRenderer:
    def __init__(self) -> None:
        self.documents: list[InvoiceDocument] = []

    def render(self, document: InvoiceDocument) -> bytes:
        self.documents.append(document)
        return FAKE_PDF
