from __future__ import annotations

import csv
import io

from plan_ingest_core.extractors.base import NormalizedText, decode_text_bytes, fallback, normalize_text, success
from plan_ingest_core.formats import CSV_MIME, DocumentFormat, file_extension, is_text_like
from plan_ingest_core.models import Document


def _declared_text(document: Document) -> bool:
    return is_text_like(document.mime_type) or file_extension(document.original_name) in {".txt", ".csv"}


def extract_text_file(document: Document, data: bytes) -> NormalizedText:
    fmt = DocumentFormat.TEXT
    if not _declared_text(document):
        return fallback(
            fmt,
            document,
            [f"File type mismatch: {document.mime_type or 'unknown'} is not a plain text file"],
            data_len=len(data),
        )

    raw, encoding = decode_text_bytes(data)
    text = normalize_text(raw)
    if not text:
        return fallback(fmt, document, ["File appears to be empty"], data_len=len(data))
    return success(fmt, text, data_len=len(data), encoding=encoding)


def render_rows(rows: list[list[str]]) -> list[str]:
    """`a | b | c` per row; blank cells and fully blank rows are dropped."""
    out: list[str] = []
    for row in rows:
        cells = [c.strip() for c in row if c and c.strip()]
        if cells:
            out.append(" | ".join(cells))
    return out


def extract_csv(document: Document, data: bytes) -> NormalizedText:
    fmt = DocumentFormat.CSV
    if (document.mime_type or "").lower() != CSV_MIME and not _declared_text(document):
        return fallback(
            fmt,
            document,
            [f"File type mismatch: {document.mime_type or 'unknown'} is not a CSV file"],
            data_len=len(data),
        )

    raw, encoding = decode_text_bytes(data)
    raw = raw.replace("\r\n", "\n").replace("\r", "\n")
    try:
        rows = list(csv.reader(io.StringIO(raw)))
    except csv.Error as e:
        return fallback(fmt, document, [f"CSV parsing failed: {e}"], data_len=len(data))

    lines = render_rows(rows)
    text = normalize_text("\n".join(lines))
    if not text:
        return fallback(fmt, document, ["File appears to be empty"], data_len=len(data))
    return success(fmt, text, data_len=len(data), encoding=encoding, rows=len(lines))
