from __future__ import annotations

import importlib
import io
import logging
from dataclasses import dataclass
from types import ModuleType
from typing import Any

from plan_ingest_core.errors import ExtractionError

logger = logging.getLogger(__name__)


def _optional_module(name: str) -> ModuleType | None:
    try:
        return importlib.import_module(name)
    except ImportError:
        logger.warning("Optional decoder library %s is not installed", name)
        return None


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


@dataclass(frozen=True)
class WordDecoder:
    """python-docx backed `.docx` reader: paragraphs in order, then table rows as `a | b`."""

    module: ModuleType
    library: str = "python-docx"

    def decode(self, data: bytes) -> str:
        try:
            doc = self.module.Document(io.BytesIO(data))
        except Exception as e:  # noqa: BLE001
            raise ExtractionError(f"Word document could not be opened: {e}") from e
        lines: list[str] = [p.text for p in doc.paragraphs]
        for table in doc.tables:
            for row in table.rows:
                cells = [_cell_text(c.text) for c in row.cells]
                row_text = " | ".join(c for c in cells if c)
                if row_text:
                    lines.append(row_text)
        return "\n".join(lines)


@dataclass(frozen=True)
class SpreadsheetDecoder:
    """openpyxl backed `.xlsx` reader returning `(sheet_name, rows)` pairs."""

    module: ModuleType
    library: str = "openpyxl"

    def decode(self, data: bytes) -> list[tuple[str, list[list[str]]]]:
        try:
            wb = self.module.load_workbook(io.BytesIO(data), read_only=True, data_only=True)
        except Exception as e:  # noqa: BLE001
            raise ExtractionError(f"Workbook could not be opened: {e}") from e
        try:
            sheets: list[tuple[str, list[list[str]]]] = []
            for ws in wb.worksheets:
                rows = [[_cell_text(v) for v in row] for row in ws.iter_rows(values_only=True)]
                sheets.append((ws.title, rows))
            return sheets
        finally:
            wb.close()


@dataclass(frozen=True)
class PdfDecoder:
    module: ModuleType
    library: str = "pypdf"

    def decode(self, data: bytes) -> str:
        try:
            reader = self.module.PdfReader(io.BytesIO(data))
        except Exception as e:  # noqa: BLE001
            raise ExtractionError(f"PDF could not be opened: {e}") from e
        chunks: list[str] = []
        for page in reader.pages:
            try:
                chunks.append(page.extract_text() or "")
            except Exception:  # noqa: BLE001
                # One broken page should not lose the rest of the document.
                logger.debug("Skipping unreadable PDF page", exc_info=True)
                continue
        return "\n".join(chunks)


def load_word_decoder() -> WordDecoder | None:
    module = _optional_module("docx")
    return WordDecoder(module=module) if module is not None else None


def load_spreadsheet_decoder() -> SpreadsheetDecoder | None:
    module = _optional_module("openpyxl")
    return SpreadsheetDecoder(module=module) if module is not None else None


def load_pdf_decoder() -> PdfDecoder | None:
    module = _optional_module("pypdf")
    return PdfDecoder(module=module) if module is not None else None
