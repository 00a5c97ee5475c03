"""CLI entry point for textile-exports."""

from __future__ import annotations

import warnings
from collections.abc import Callable
from pathlib import Path

import pandas as pd
import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table as RichTable

from textile_exports import __version__
from textile_exports.errors import (
    DivisionAnomaly,
    EmptyInputError,
    NumericCoercionWarning,
    SchemaMismatchError,
)
from textile_exports.models import ExportConfig, QCReport
from textile_exports.pipeline import load_normalized, rank_by_value_per_tonne, run_pipeline

app = typer.Typer(
    name="textile-exports",
    help="textile-exports — Chart Dutch textile-waste export destinations from WITS data.",
    add_completion=False,
    no_args_is_help=True,
)
console = Console()

_DEFAULTS = ExportConfig()
_INPUT_ERRORS = (EmptyInputError, SchemaMismatchError, FileNotFoundError, ValueError, OSError)


def _noop(*_args: object, **_kwargs: object) -> None:
    return None


def _printer(quiet: bool) -> Callable[..., None]:
    return _noop if quiet else console.print


def _err(msg: str) -> None:
    console.print(f"[red]x[/red] {msg}")


# ── Helpers ──────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"textile-exports v{__version__}")
        raise typer.Exit()


def _build_config(**kwargs: object) -> ExportConfig:
    try:
        return ExportConfig(**kwargs)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        _err(str(exc))
        raise typer.Exit(code=2)


def _print_qc(qc: QCReport) -> None:
    console.print(
        f"  {qc.files_loaded} files, {qc.rows_in} rows in, {qc.rows_out} rows normalized"
    )
    for w in qc.warnings:
        console.print(f"  [yellow]![/yellow] {w}")


def _format_cell(value: object, digits: int = 0) -> str:
    if pd.isna(value):  # type: ignore[arg-type]
        return "n/a"
    if isinstance(value, (int, float)):
        return f"{value:,.{digits}f}"
    return str(value)


# ── Callbacks ────────────────────────────────────────────────────


@app.callback()
def main(
    version: bool | None = typer.Option(
        None, "--version", "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """textile-exports CLI."""


# ── run command ──────────────────────────────────────────────────


@app.command()
def run(
    input_dir: Path = typer.Option(
        _DEFAULTS.input_dir, "--input-dir", "-i",
        help="Directory holding the WITS export workbooks.",
    ),
    output: Path = typer.Option(
        _DEFAULTS.output_path, "--output", "-o",
        help="Path of the HTML chart to write.",
    ),
    pattern: str = typer.Option(
        _DEFAULTS.file_pattern, "--pattern",
        help="Glob pattern selecting input files.",
    ),
    year: int = typer.Option(_DEFAULTS.year, "--year", help="Export year to chart."),
    top: int = typer.Option(_DEFAULTS.top_n, "--top", help="Number of destinations to keep."),
    quiet: bool = typer.Option(
        False, "--quiet", "-q",
        help="Suppress informational output; still writes the chart.",
    ),
) -> None:
    """Load, aggregate and chart the top export destinations."""
    echo = _printer(quiet)
    config = _build_config(
        input_dir=input_dir, output_path=output, file_pattern=pattern, year=year, top_n=top
    )

    if not quiet:
        console.print(Panel(
            f"[bold]textile-exports[/bold] v{__version__}\n"
            f"Input:  {config.input_dir} ({config.file_pattern})\n"
            f"Output: {config.output_path}",
            title="Pipeline Start", border_style="blue",
        ))

    echo("[blue]>[/blue] Loading, aggregating and charting …")
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", NumericCoercionWarning)
            warnings.simplefilter("ignore", DivisionAnomaly)
            result = run_pipeline(config)
    except _INPUT_ERRORS as exc:
        _err(str(exc))
        raise typer.Exit(code=2)
    except Exception as exc:
        _err(f"Unexpected internal error: {exc}")
        raise typer.Exit(code=1)

    if not quiet:
        _print_qc(result.qc)
        console.print(
            f"  {len(result.ranked.axis_order)} destinations charted for {config.year}"
        )
        console.print(Panel(
            f"[green]Done[/green] — chart -> {result.output_path}",
            title="Pipeline Complete", border_style="green",
        ))


# ── values command ───────────────────────────────────────────────


@app.command()
def values(
    input_dir: Path = typer.Option(
        _DEFAULTS.input_dir, "--input-dir", "-i",
        help="Directory holding the WITS export workbooks.",
    ),
    pattern: str = typer.Option(
        _DEFAULTS.file_pattern, "--pattern",
        help="Glob pattern selecting input files.",
    ),
    year: int = typer.Option(_DEFAULTS.year, "--year", help="Export year to rank."),
    limit: int = typer.Option(30, "--limit", "-n", help="Rows to show (0 = all)."),
) -> None:
    """Rank destinations by average export value per tonne.

    Prints a table only; nothing is written.
    """
    config = _build_config(input_dir=input_dir, file_pattern=pattern, year=year)
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", NumericCoercionWarning)
            normalized, qc = load_normalized(config)
        ranking = rank_by_value_per_tonne(normalized, config.year, config.excluded_partner)
    except _INPUT_ERRORS as exc:
        _err(str(exc))
        raise typer.Exit(code=2)
    except Exception as exc:
        _err(f"Unexpected internal error: {exc}")
        raise typer.Exit(code=1)

    for w in qc.warnings:
        console.print(f"  [yellow]![/yellow] {w}")
    if limit > 0:
        ranking = ranking.head(limit)

    tbl = RichTable(title=f"Value per tonne ({config.year})", show_lines=False)
    tbl.add_column("Exportbestemming", style="bold")
    tbl.add_column("HS")
    tbl.add_column("Volume (ton)", justify="right")
    tbl.add_column("Value (USD)", justify="right")
    tbl.add_column("USD / ton", justify="right")
    for row in ranking.itertuples(index=False):
        tbl.add_row(
            _format_cell(row.exportbestemming),
            _format_cell(row.hs_code),
            _format_cell(row.volume_ton),
            _format_cell(row.trade_value_usd),
            _format_cell(row.value_per_tonne_usd),
        )
    console.print(tbl)
