from __future__ import annotations

from plan_ingest_core.decoders import SpreadsheetDecoder
from plan_ingest_core.extractors.base import NormalizedText, fallback, normalize_text, success
from plan_ingest_core.extractors.text import render_rows
from plan_ingest_core.formats import OLE2_SIGNATURE, XLS_MIME, XLSX_MIME, ZIP_SIGNATURE, DocumentFormat
from plan_ingest_core.models import Document


def _declared_excel(document: Document) -> bool:
    ct = (document.mime_type or "").lower()
    name = (document.original_name or "").lower()
    return ct in {XLSX_MIME, XLS_MIME} or name.endswith((".xlsx", ".xls"))


def render_workbook(sheets: list[tuple[str, list[list[str]]]]) -> str:
    blocks: list[str] = []
    for i, (name, rows) in enumerate(sheets, start=1):
        lines = [f"Sheet {i}: {name}", "-" * 30, *render_rows(rows)]
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


def extract_spreadsheet(document: Document, data: bytes, decoder: SpreadsheetDecoder | None) -> NormalizedText:
    fmt = DocumentFormat.EXCEL
    n = len(data)

    if not _declared_excel(document):
        return fallback(
            fmt,
            document,
            [
                f"File type mismatch: {document.mime_type or 'unknown'}",
                "This may not be an Excel file",
                "Check the file extension and type",
            ],
            data_len=n,
        )
    if data.startswith(OLE2_SIGNATURE):
        return fallback(
            fmt,
            document,
            [
                "Legacy Excel (.xls) format cannot be read directly",
                "Save the workbook as .xlsx or export it to CSV",
            ],
            data_len=n,
        )
    if not data.startswith(ZIP_SIGNATURE):
        # Typically a CSV export that kept the Excel MIME type.
        return fallback(
            fmt,
            document,
            [
                f"File type mismatch: declared {document.mime_type or 'unknown'} but content is not an Excel workbook",
                "The file may be CSV or plain text saved with an Excel type",
                "Upload it as CSV (.csv) instead",
            ],
            data_len=n,
        )
    if decoder is None:
        return fallback(
            fmt,
            document,
            ["Excel processing library (openpyxl) not available", "Try converting to CSV format"],
            data_len=n,
        )

    try:
        sheets = decoder.decode(data)
    except Exception as e:  # noqa: BLE001
        return fallback(fmt, document, [f"Processing failed: {e}"], data_len=n)

    text = normalize_text(render_workbook(sheets))
    if not any(rows for _, rows in sheets) or not text:
        return fallback(fmt, document, ["Workbook appears to be empty"], data_len=n)
    return success(fmt, text, data_len=n, library=decoder.library, sheets=len(sheets))
