"""Normalize + aggregate pipeline — pure functions over DataFrames.

``run_pipeline`` is the only function with side effects: it wires the
loader, these transforms and the HTML writer together.
"""

from __future__ import annotations

import warnings
from collections.abc import Sequence
from typing import Any

import pandas as pd

from textile_exports import ALL_HS_CODES, SOURCE_COLUMNS
from textile_exports.errors import (
    DivisionAnomaly,
    EmptyInputError,
    NumericCoercionWarning,
    SchemaMismatchError,
)
from textile_exports.io import load_tables
from textile_exports.models import ExportConfig, PipelineResult, QCReport, RankedDestinations
from textile_exports.report import build_bar_chart, write_chart

NUMERIC_COLUMNS: tuple[str, ...] = ("year", "trade_value_1000usd", "quantity_kg")
GROUP_KEYS: list[str] = ["exportbestemming", "year", "hs_code"]

AGGREGATED_COLUMNS: list[str] = [
    "exportbestemming",
    "year",
    "hs_code",
    "volume_ton",
    "total_trade_value_1000usd",
]
RANKED_COLUMNS: list[str] = [
    "exportbestemming",
    "hs_code",
    "volume_ton",
    "total_trade_value_1000usd",
    "average_value_per_tonne_usd",
    "total_volume_ton",
    "rank",
]
VALUE_REPORT_COLUMNS: list[str] = [
    "exportbestemming",
    "hs_code",
    "volume_ton",
    "trade_value_usd",
    "value_per_tonne_usd",
]

# ── Merging ──────────────────────────────────────────────────────


def _normalize_header_name(name: object) -> str:
    return str(name).strip()


def _find_duplicate_columns(columns: pd.Index) -> list[str]:
    return sorted({str(name) for name in columns[columns.duplicated(keep=False)]})


def merge_tables(tables: Sequence[pd.DataFrame]) -> pd.DataFrame:
    """Stack *tables* row-wise into one DataFrame.

    Every table must carry the same set of columns (order may differ).
    Duplicate records are kept; one file per year is the expected layout.

    Raises
    ------
    EmptyInputError
        If *tables* is empty.
    SchemaMismatchError
        If a table has duplicate headers or a different column set.
    """
    if not tables:
        raise EmptyInputError("No input tables to merge")

    renamed: list[pd.DataFrame] = []
    for position, table in enumerate(tables, start=1):
        table = table.copy()
        table.columns = pd.Index([_normalize_header_name(c) for c in table.columns])
        duplicates = _find_duplicate_columns(table.columns)
        if duplicates:
            raise SchemaMismatchError(
                f"Table {position} has duplicate columns: {', '.join(duplicates)}"
            )
        renamed.append(table)

    expected = set(renamed[0].columns)
    for position, table in enumerate(renamed[1:], start=2):
        present = set(table.columns)
        if present != expected:
            missing = sorted(expected - present)
            extra = sorted(present - expected)
            details = []
            if missing:
                details.append(f"missing {', '.join(missing)}")
            if extra:
                details.append(f"unexpected {', '.join(extra)}")
            raise SchemaMismatchError(
                f"Table {position} does not match table 1: {'; '.join(details)}"
            )

    return pd.concat(renamed, ignore_index=True)


# ── Type coercion helpers ────────────────────────────────────────


def _blank_to_na(s: pd.Series) -> pd.Series:
    return s.astype("string").str.strip().replace("", pd.NA)


def _code_as_text(s: pd.Series) -> pd.Series:
    if pd.api.types.is_numeric_dtype(s):
        return pd.to_numeric(s, errors="coerce").astype("Int64").astype("string")
    return _blank_to_na(s)


def _coerce_numeric(s: pd.Series) -> tuple[pd.Series, int]:
    """Parse *s* as ``Float64``; unparseable cells become ``pd.NA``.

    Returns ``(parsed, failures)`` where *failures* counts non-blank cells
    that could not be parsed.
    """
    text = _blank_to_na(s)
    parsed = pd.to_numeric(text, errors="coerce").astype("Float64")
    failures = int((text.notna() & parsed.isna()).sum())
    return parsed, failures


def _as_year(s: pd.Series) -> pd.Series:
    present = s.dropna()
    if (present == present.round()).all():
        return s.round().astype("Int64")
    return s


def _sum_keep_na(values: pd.Series) -> Any:
    return values.sum(skipna=False)


# ── Normalisation ────────────────────────────────────────────────


def split_hs_code(df: pd.DataFrame) -> pd.DataFrame:
    """Split six-digit ``hs_code`` into a 4-digit root and 2-digit extension.

    ``hs_code`` keeps all but the last two characters, ``hs_extension`` gets
    the last two and is placed right after ``hs_code``.
    """
    df = df.copy()
    codes = df["hs_code"].astype("string")
    if "hs_extension" in df.columns:
        df = df.drop(columns="hs_extension")
    df["hs_code"] = codes.str[:-2]
    df.insert(df.columns.get_loc("hs_code") + 1, "hs_extension", codes.str[-2:])
    return df


def normalize_records(df: pd.DataFrame) -> tuple[pd.DataFrame, QCReport]:
    """Project *df* onto the canonical schema and derive tonnes + HS root.

    Returns ``(normalized_df, qc_report)``.  No rows are dropped; cells that
    fail numeric parsing become ``pd.NA`` and are reported through
    :class:`NumericCoercionWarning`.

    Raises
    ------
    SchemaMismatchError
        If any WITS source column is missing.
    """
    qc = QCReport(rows_in=len(df), rows_out=len(df), dropped_rows=0)

    # 1. Select + rename
    present = {_normalize_header_name(c): c for c in df.columns}
    missing = [name for name in SOURCE_COLUMNS if name not in present]
    if missing:
        raise SchemaMismatchError(f"Missing required columns: {', '.join(missing)}")
    df = df[[present[name] for name in SOURCE_COLUMNS]].copy()
    df.columns = pd.Index(list(SOURCE_COLUMNS.values()))

    # 2. Text fields
    df["hs_code"] = _code_as_text(df["hs_code"])
    df["exportbestemming"] = _blank_to_na(df["exportbestemming"])
    unexpected = int((df["hs_code"].notna() & ~df["hs_code"].isin(ALL_HS_CODES)).sum())
    if unexpected:
        suffix = "" if unexpected == 1 else "s"
        qc.warnings.append(
            f"Found {unexpected} row{suffix} with an HS code outside "
            f"{', '.join(ALL_HS_CODES)}; kept as-is"
        )

    # 3. Numeric fields
    for col in NUMERIC_COLUMNS:
        parsed, failures = _coerce_numeric(df[col])
        df[col] = parsed
        if failures:
            suffix = "" if failures == 1 else "s"
            message = (
                f"Could not parse {failures} value{suffix} in {col}; "
                "treated as missing"
            )
            qc.coercion_failures[col] = failures
            qc.warnings.append(message)
            warnings.warn(message, NumericCoercionWarning, stacklevel=2)
    df["year"] = _as_year(df["year"])

    # 4. Derived fields
    df["volume_ton"] = df["quantity_kg"] / 1000
    df = df.drop(columns="quantity_kg")
    df = split_hs_code(df)

    qc.rows_out = len(df)
    qc.dropped_rows = qc.rows_in - qc.rows_out
    return df.reset_index(drop=True), qc


# ── Aggregation ──────────────────────────────────────────────────


def aggregate_subcategories(df: pd.DataFrame) -> pd.DataFrame:
    """Sum volume and trade value per destination, year and HS root code.

    With ``hs_code`` already cut to four digits this folds 631010 and 631090
    into one 6310 row.  A missing value anywhere in a group makes that
    group's sum missing.
    """
    if df.empty:
        return pd.DataFrame(columns=AGGREGATED_COLUMNS)
    aggregated = (
        df.groupby(GROUP_KEYS, sort=False, dropna=False)
        .agg(
            volume_ton=("volume_ton", _sum_keep_na),
            total_trade_value_1000usd=("trade_value_1000usd", _sum_keep_na),
        )
        .reset_index()
    )
    for col in ("volume_ton", "total_trade_value_1000usd"):
        aggregated[col] = aggregated[col].astype("Float64")
    return aggregated[AGGREGATED_COLUMNS]


def filter_export_year(
    df: pd.DataFrame, year: int = 2023, excluded_partner: str = "World"
) -> pd.DataFrame:
    """Keep rows for *year*, dropping the world-total partner row.

    Rows with a missing year or destination never match.
    """
    mask = (df["year"] == year) & (df["exportbestemming"] != excluded_partner)
    mask = mask.fillna(False).astype(bool)
    return df[mask].reset_index(drop=True)


def _zero_volume_mask(df: pd.DataFrame) -> pd.Series:
    return (df["volume_ton"] == 0).fillna(False).astype(bool)


def compute_average_value(df: pd.DataFrame) -> pd.DataFrame:
    """Add ``average_value_per_tonne_usd`` (trade value / volume x 1000).

    A zero volume is not guarded and always emits :class:`DivisionAnomaly`.
    A non-zero value over zero volume gives ``inf``; 0/0 comes out as NaN or,
    on newer pandas, ``pd.NA``, and the chart shows it as missing.
    A missing volume yields a missing average without a warning.
    """
    df = df.copy()
    df["average_value_per_tonne_usd"] = (
        df["total_trade_value_1000usd"] / df["volume_ton"]
    ) * 1000
    zero_volume = int(_zero_volume_mask(df).sum())
    if zero_volume:
        suffix = "" if zero_volume == 1 else "s"
        warnings.warn(
            f"{zero_volume} row{suffix} with zero volume; average value per tonne "
            "is not finite",
            DivisionAnomaly,
            stacklevel=2,
        )
    return df


def rank_destinations(df: pd.DataFrame, top_n: int = 30) -> RankedDestinations:
    """Rank destinations by total volume and keep the top *top_n*.

    ``rank`` is zero-based (0 = largest total).  Ties keep the order in which
    destinations first appear; destinations with a missing total rank last.
    """
    if df.empty:
        columns = [c for c in RANKED_COLUMNS if c not in df.columns]
        return RankedDestinations(table=df.reindex(columns=[*df.columns, *columns]))

    df = df.copy()
    totals = df.groupby("exportbestemming", sort=False, dropna=False)["volume_ton"]
    df["total_volume_ton"] = totals.transform(_sum_keep_na).astype("Float64")

    ranking = (
        df.drop_duplicates("exportbestemming")[["exportbestemming", "total_volume_ton"]]
        .sort_values("total_volume_ton", ascending=False, kind="stable", na_position="last")
        .reset_index(drop=True)
    )
    ranking["rank"] = range(len(ranking))

    df = df.merge(ranking[["exportbestemming", "rank"]], on="exportbestemming", how="left")
    kept = (
        df[df["rank"] < top_n]
        .sort_values("rank", kind="stable")
        .reset_index(drop=True)
    )
    top = ranking[ranking["rank"] < top_n]
    axis_order = [str(name) for name in reversed(top["exportbestemming"].tolist())]
    ordered = [c for c in RANKED_COLUMNS if c in kept.columns]
    extras = [c for c in kept.columns if c not in ordered]
    return RankedDestinations(table=kept[ordered + extras], axis_order=axis_order)


def build_destination_table(
    normalized: pd.DataFrame, config: ExportConfig | None = None
) -> RankedDestinations:
    """Filter, aggregate and rank *normalized* records for the chart."""
    if config is None:
        config = ExportConfig()
    exports = filter_export_year(normalized, config.year, config.excluded_partner)
    exports = aggregate_subcategories(exports).drop(columns="year")
    exports = compute_average_value(exports)
    return rank_destinations(exports, top_n=config.top_n)


def rank_by_value_per_tonne(
    normalized: pd.DataFrame, year: int = 2023, excluded_partner: str = "World"
) -> pd.DataFrame:
    """Rank destination x HS root rows by export value per tonne (USD)."""
    exports = filter_export_year(normalized, year, excluded_partner)
    if exports.empty:
        return pd.DataFrame(columns=VALUE_REPORT_COLUMNS)
    summary = (
        exports.groupby(["exportbestemming", "hs_code"], sort=False, dropna=False)
        .agg(
            volume_ton=("volume_ton", _sum_keep_na),
            trade_value_1000usd=("trade_value_1000usd", _sum_keep_na),
        )
        .reset_index()
    )
    summary["volume_ton"] = summary["volume_ton"].astype("Float64")
    summary["trade_value_usd"] = summary["trade_value_1000usd"].astype("Float64") * 1000
    summary["value_per_tonne_usd"] = summary["trade_value_usd"] / summary["volume_ton"]
    return (
        summary[VALUE_REPORT_COLUMNS]
        .sort_values("value_per_tonne_usd", ascending=False, kind="stable", na_position="last")
        .reset_index(drop=True)
    )


# ── Entry point ──────────────────────────────────────────────────


def load_normalized(config: ExportConfig) -> tuple[pd.DataFrame, QCReport]:
    """Load, merge and normalize every export file named by *config*."""
    tables = load_tables(config)
    normalized, qc = normalize_records(merge_tables(tables))
    qc.files_loaded = len(tables)
    return normalized, qc


def run_pipeline(config: ExportConfig | None = None) -> PipelineResult:
    """Run the whole batch: load → normalize → rank → write the HTML chart."""
    if config is None:
        config = ExportConfig()
    normalized, qc = load_normalized(config)
    ranked = build_destination_table(normalized, config)

    zero_volume = int(_zero_volume_mask(ranked.table).sum()) if not ranked.table.empty else 0
    qc.non_finite_values = zero_volume
    if zero_volume:
        qc.warnings.append(
            f"{zero_volume} charted rows have zero volume; average value per tonne "
            "shown as inf"
        )
    if ranked.table.empty:
        qc.warnings.append(
            f"No exports found for {config.year} (excluding {config.excluded_partner!r})"
        )

    output_path = write_chart(build_bar_chart(ranked, config), config.output_path)
    return PipelineResult(ranked=ranked, qc=qc, output_path=output_path)
