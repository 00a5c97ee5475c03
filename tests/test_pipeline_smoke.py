"""Smoke tests for the full load → chart run."""

from __future__ import annotations

from pathlib import Path

import pandas as pd
import pytest

from textile_exports.errors import EmptyInputError
from textile_exports.models import ExportConfig
from textile_exports.pipeline import run_pipeline

HEADERS = ["Reporter", "ProductCode", "Year", "Partner", "Trade Value 1000USD", "Quantity"]


def _write_wits(path: Path, rows: list[list[str]]) -> None:
    pd.DataFrame(rows, columns=HEADERS).to_excel(path, sheet_name="By-HS6Product", index=False)


@pytest.fixture
def config(tmp_path: Path) -> ExportConfig:
    data_dir = tmp_path / "Datasets"
    data_dir.mkdir()
    _write_wits(
        data_dir / "nl_6309.xlsx",
        [
            ["Netherlands", "630900", "2022", "Germany", "40", "9000"],
            ["Netherlands", "630900", "2023", "Germany", "50", "10000"],
            ["Netherlands", "630900", "2023", "World", "100", "20000"],
        ],
    )
    _write_wits(
        data_dir / "nl_6310.xlsx",
        [
            ["Netherlands", "631010", "2023", "Germany", "10", "5000"],
            ["Netherlands", "631090", "2023", "Ghana", "3", "0"],
        ],
    )
    return ExportConfig(input_dir=data_dir, output_path=tmp_path / "out" / "chart.html")


class TestRunPipeline:
    """End-to-end runs on small synthetic WITS exports."""

    def test_writes_chart_and_ranks_destinations(self, config: ExportConfig) -> None:
        with pytest.warns(Warning):
            result = run_pipeline(config)

        assert result.output_path == config.output_path
        assert config.output_path.exists()
        assert result.ranked.destinations == ["Germany", "Ghana"]

    def test_qc_counts_files_and_rows(self, config: ExportConfig) -> None:
        with pytest.warns(Warning):
            result = run_pipeline(config)

        assert result.qc.files_loaded == 2
        assert result.qc.rows_in == 5
        assert result.qc.rows_out == 5
        assert result.qc.dropped_rows == 0

    def test_zero_volume_is_reported_not_fatal(self, config: ExportConfig) -> None:
        with pytest.warns(Warning):
            result = run_pipeline(config)

        assert result.qc.non_finite_values == 1
        assert any("zero volume" in w for w in result.qc.warnings)

    def test_germany_totals(self, config: ExportConfig) -> None:
        with pytest.warns(Warning):
            result = run_pipeline(config)

        germany = result.ranked.table[result.ranked.table["exportbestemming"] == "Germany"]
        assert sorted(germany["hs_code"]) == ["6309", "6310"]
        assert (germany["total_volume_ton"] == 15).all()


def test_run_pipeline_empty_directory_raises(tmp_path: Path) -> None:
    with pytest.raises(EmptyInputError):
        run_pipeline(ExportConfig(input_dir=tmp_path, output_path=tmp_path / "c.html"))
    assert not (tmp_path / "c.html").exists()
