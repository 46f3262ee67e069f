from __future__ import annotations

from plan_ingest_core.decoders import PdfDecoder
from plan_ingest_core.extractors.base import NormalizedText, fallback, normalize_text, success
from plan_ingest_core.formats import PDF_SIGNATURE, DocumentFormat
from plan_ingest_core.models import Document


def extract_pdf(document: Document, data: bytes, decoder: PdfDecoder | None) -> NormalizedText:
    """PDF support is best-effort: anything short of selectable text yields the fallback."""
    fmt = DocumentFormat.PDF
    n = len(data)

    if decoder is None:
        return fallback(
            fmt,
            document,
            [
                "PDF processing requires additional setup",
                "Convert to Word (.docx) for guaranteed processing",
            ],
            data_len=n,
        )
    if not data.lstrip().startswith(PDF_SIGNATURE):
        return fallback(
            fmt,
            document,
            ["File type mismatch: content is not a PDF document", "Check the file type and try again"],
            data_len=n,
        )

    try:
        raw = decoder.decode(data)
    except Exception:  # noqa: BLE001
        return fallback(
            fmt,
            document,
            [
                "PDF text extraction failed",
                "Try converting to Word or text format",
                "Ensure PDF contains selectable text (not scanned images)",
            ],
            data_len=n,
        )

    text = normalize_text(raw)
    if not text:
        return fallback(
            fmt,
            document,
            [
                "No extractable text found - may be image-based PDF",
                "Try using OCR software first",
                "Convert to Word format",
            ],
            data_len=n,
        )
    return success(fmt, text, data_len=n, library=decoder.library)
