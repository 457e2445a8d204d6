# Minimal document loader for the file_analyst tool.
# Supports .pdf, .xlsx, .xls; anything else is decoded as UTF-8 text.
# Single place for "file/bytes → text".

import io
from pathlib import Path

PDF_EXTENSIONS = frozenset({".pdf"})
EXCEL_EXTENSIONS = frozenset({".xlsx", ".xls"})


def bytes_to_text(raw: bytes, filename: str) -> str:
    """
    Convert raw file bytes to text by extension. Unknown or missing extensions
    are treated as text so uploads saved without a suffix still work.
    """
    ext = Path(filename).suffix.lower() if filename else ""
    if ext in PDF_EXTENSIONS:
        return _read_pdf(raw)
    if ext in EXCEL_EXTENSIONS:
        return _read_excel(raw)
    return raw.decode("utf-8", errors="replace")


def _read_pdf(raw: bytes) -> str:
    from pypdf import PdfReader
    reader = PdfReader(io.BytesIO(raw))
    return "\n".join(page.extract_text() or "" for page in reader.pages)


def _read_excel(raw: bytes) -> str:
    import pandas as pd
    df = pd.read_excel(io.BytesIO(raw), sheet_name=None, header=None)
    parts = []
    for sheet_df in df.values():
        parts.append(sheet_df.astype(str).to_csv(sep=" ", index=False, header=False))
    return "\n\n".join(parts)


def read_file_text(path: str | Path) -> str:
    """Read a file from disk and return its text. Raises OSError if unreadable."""
    p = Path(path)
    return bytes_to_text(p.read_bytes(), p.name)
