"""Data models / configuration used across the package."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from numbers import Integral
from pathlib import Path
from typing import Any

import pandas as pd


def _to_non_negative_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, Integral):
        raise TypeError(f"{field_name} must be an integer")
    result = int(value)
    if result < 0:
        raise ValueError(f"{field_name} must be >= 0")
    return result


def _to_string_list(values: Sequence[Any] | None, field_name: str) -> list[str]:
    if values is None:
        return []
    if isinstance(values, str):
        raise TypeError(f"{field_name} must be a sequence of strings")
    normalized: list[str] = []
    for item in values:
        if not isinstance(item, str):
            raise TypeError(f"{field_name} items must be strings")
        normalized.append(item)
    return normalized


def _to_count_map(values: Mapping[str, Any] | None, field_name: str) -> dict[str, int]:
    if values is None:
        return {}
    return {
        str(key): _to_non_negative_int(count, f"{field_name}[{key!r}]")
        for key, count in values.items()
    }


def _to_non_empty_str(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{field_name} must be a non-empty string")
    return value


@dataclass
class ExportConfig:
    """Where to read the WITS exports, what to chart, and where to write it."""

    input_dir: Path = Path("Datasets")
    output_path: Path = Path("bestemmingen_2023_volume.html")
    file_pattern: str = "*.xlsx"
    sheet_name: str = "By-HS6Product"
    year: int = 2023
    top_n: int = 30
    excluded_partner: str = "World"

    def __post_init__(self) -> None:
        self.input_dir = Path(self.input_dir)
        self.output_path = Path(self.output_path)
        self.file_pattern = _to_non_empty_str(self.file_pattern, "file_pattern")
        self.sheet_name = _to_non_empty_str(self.sheet_name, "sheet_name")
        self.excluded_partner = _to_non_empty_str(self.excluded_partner, "excluded_partner")
        self.year = _to_non_negative_int(self.year, "year")
        self.top_n = _to_non_negative_int(self.top_n, "top_n")
        if self.top_n == 0:
            raise ValueError("top_n must be >= 1")


@dataclass
class QCReport:
    """Quality-control summary of one run, shown by the CLI.

    Contract invariant: ``dropped_rows == rows_in - rows_out``.
    """

    files_loaded: int = 0
    rows_in: int = 0
    rows_out: int = 0
    dropped_rows: int = 0
    coercion_failures: dict[str, int] = field(default_factory=dict)
    non_finite_values: int = 0
    warnings: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.files_loaded = _to_non_negative_int(self.files_loaded, "files_loaded")
        self.rows_in = _to_non_negative_int(self.rows_in, "rows_in")
        self.rows_out = _to_non_negative_int(self.rows_out, "rows_out")
        self.dropped_rows = _to_non_negative_int(self.dropped_rows, "dropped_rows")
        self.coercion_failures = _to_count_map(self.coercion_failures, "coercion_failures")
        self.non_finite_values = _to_non_negative_int(
            self.non_finite_values, "non_finite_values"
        )
        self.warnings = _to_string_list(self.warnings, "warnings")
        if self.rows_out > self.rows_in:
            raise ValueError("rows_out must be <= rows_in")
        expected_dropped = self.rows_in - self.rows_out
        if self.dropped_rows != expected_dropped:
            raise ValueError("dropped_rows must equal rows_in - rows_out")


@dataclass
class RankedDestinations:
    """Top destinations for one year, ready for charting.

    ``table`` holds one row per destination x HS root code; ``axis_order``
    lists the kept destinations by ascending total volume, which puts the
    largest bar at the top of a horizontal chart.
    """

    table: pd.DataFrame
    axis_order: list[str] = field(default_factory=list)

    @property
    def destinations(self) -> list[str]:
        """Kept destinations, largest first."""
        return list(reversed(self.axis_order))


@dataclass
class PipelineResult:
    """Everything a finished run produced."""

    ranked: RankedDestinations
    qc: QCReport
    output_path: Path
