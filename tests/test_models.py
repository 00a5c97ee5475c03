from __future__ import annotations

from pathlib import Path

import pandas as pd
import pytest

from textile_exports.models import ExportConfig, QCReport, RankedDestinations


def test_export_config_defaults_match_wits_layout() -> None:
    config = ExportConfig()

    assert config.input_dir == Path("Datasets")
    assert config.output_path == Path("bestemmingen_2023_volume.html")
    assert config.file_pattern == "*.xlsx"
    assert config.sheet_name == "By-HS6Product"
    assert config.year == 2023
    assert config.top_n == 30
    assert config.excluded_partner == "World"


def test_export_config_coerces_paths() -> None:
    config = ExportConfig(input_dir="data", output_path="out/chart.html")  # type: ignore[arg-type]

    assert config.input_dir == Path("data")
    assert config.output_path == Path("out/chart.html")


def test_export_config_rejects_invalid_values() -> None:
    with pytest.raises(ValueError, match="top_n"):
        ExportConfig(top_n=0)

    with pytest.raises(TypeError, match="year"):
        ExportConfig(year=True)  # type: ignore[arg-type]

    with pytest.raises(ValueError, match="sheet_name"):
        ExportConfig(sheet_name="  ")

    with pytest.raises(ValueError, match="file_pattern"):
        ExportConfig(file_pattern="")


def test_qcreport_copies_list_and_map_fields() -> None:
    failures = {"quantity_kg": 1}
    messages = ("bad cell",)

    qc = QCReport(
        files_loaded=2,
        rows_in=10,
        rows_out=10,
        coercion_failures=failures,
        warnings=messages,  # type: ignore[arg-type]
    )
    qc.coercion_failures["year"] = 3

    assert failures == {"quantity_kg": 1}
    assert qc.warnings == ["bad cell"]
    assert qc.files_loaded == 2


def test_qcreport_rejects_inconsistent_row_relationships() -> None:
    with pytest.raises(ValueError, match="rows_out"):
        QCReport(rows_in=2, rows_out=3)

    with pytest.raises(ValueError, match="dropped_rows"):
        QCReport(rows_in=5, rows_out=4, dropped_rows=0)


def test_qcreport_rejects_bad_counts() -> None:
    with pytest.raises(ValueError, match="non_finite_values"):
        QCReport(non_finite_values=-1)

    with pytest.raises(ValueError, match="coercion_failures"):
        QCReport(coercion_failures={"year": -2})

    with pytest.raises(TypeError, match="warnings"):
        QCReport(warnings="oops")  # type: ignore[arg-type]


def test_ranked_destinations_lists_largest_first() -> None:
    ranked = RankedDestinations(table=pd.DataFrame(), axis_order=["Poland", "Belgium", "Germany"])

    assert ranked.destinations == ["Germany", "Belgium", "Poland"]
