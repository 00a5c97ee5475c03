"""I/O helpers — discover and load WITS export files."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

import pandas as pd

from textile_exports.errors import EmptyInputError
from textile_exports.models import ExportConfig

DEFAULT_SHEET = "By-HS6Product"

_EXCEL_ENGINES: dict[str, Literal["openpyxl", "xlrd"]] = {
    ".xlsx": "openpyxl",
    ".xlsm": "openpyxl",
    ".xls": "xlrd",
}

# ── Discovery ────────────────────────────────────────────────────


def discover_input_files(directory: Path, pattern: str = "*.xlsx") -> list[Path]:
    """Return files in *directory* matching *pattern*, sorted by name.

    Raises
    ------
    EmptyInputError
        If *directory* does not exist or is not a directory.
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise EmptyInputError(f"Input directory not found: {directory}")
    return sorted(p for p in directory.glob(pattern) if p.is_file())


# ── Loading ──────────────────────────────────────────────────────


def _read_excel_sheet(path: Path, sheet_name: str) -> pd.DataFrame:
    engine = _EXCEL_ENGINES[path.suffix.lower()]
    try:
        book = pd.ExcelFile(path, engine=engine)
    except ImportError as exc:
        raise ValueError(
            f"Reading {path.suffix} files needs the {engine!r} package. "
            "Either convert to .xlsx or add dependency: pip install xlrd"
        ) from exc
    with book:
        if sheet_name not in book.sheet_names:
            available = ", ".join(str(name) for name in book.sheet_names)
            raise ValueError(
                f"Sheet {sheet_name!r} not found in {path.name} (available: {available})"
            )
        return book.parse(sheet_name, dtype="string")


def load_table(path: Path, sheet_name: str = DEFAULT_SHEET) -> pd.DataFrame:
    """Load one WITS export and return its cells as a text DataFrame.

    Excel workbooks are read from *sheet_name*; CSV exports of that sheet are
    read as-is.

    Raises
    ------
    FileNotFoundError
        If *path* does not exist.
    ValueError
        If the extension is not supported, the sheet is missing, or CSV
        decoding/parsing fails.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")
    if not path.is_file():
        raise ValueError(f"Input path is not a file: {path}")

    suffix = path.suffix.lower()
    if suffix == ".csv":
        last_exc: Exception | None = None
        for encoding in ("utf-8-sig", "utf-8", "latin-1"):
            try:
                return pd.read_csv(
                    path,
                    dtype="string",
                    encoding=encoding,
                    encoding_errors="strict",
                )
            except (UnicodeDecodeError, pd.errors.ParserError) as exc:
                last_exc = exc
        raise ValueError(f"Could not read CSV {path} (decode or parse failed)") from last_exc

    if suffix in _EXCEL_ENGINES:
        return _read_excel_sheet(path, sheet_name)

    raise ValueError(f"Unsupported file type: {suffix!r}. Use .xlsx, .xls or .csv")


def load_tables(config: ExportConfig) -> list[pd.DataFrame]:
    """Load every export file in ``config.input_dir``, in file-name order."""
    files = discover_input_files(config.input_dir, config.file_pattern)
    if not files:
        raise EmptyInputError(
            f"No files matching {config.file_pattern!r} in {config.input_dir}"
        )
    return [load_table(path, config.sheet_name) for path in files]
