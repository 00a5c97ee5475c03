"""Tests for the HTML bar chart and its hover text."""

from __future__ import annotations

from pathlib import Path

import pandas as pd

from textile_exports import HS_RAGS_ROOT, HS_RAGS_SUBCODES, HS_USED_CLOTHING
from textile_exports.models import ExportConfig, RankedDestinations
from textile_exports.report import (
    CAPTION,
    LEGEND_TITLE,
    SUBTITLE,
    build_bar_chart,
    hover_text,
    write_chart,
)


def _ranked() -> RankedDestinations:
    table = pd.DataFrame(
        {
            "exportbestemming": ["Germany", "Germany", "Poland"],
            "hs_code": ["6309", "6310", "6309"],
            "volume_ton": pd.array([10.0, 5.0, 3.0], dtype="Float64"),
            "total_trade_value_1000usd": pd.array([50.0, 10.0, 3.0], dtype="Float64"),
            "average_value_per_tonne_usd": pd.array([5000.0, 2000.0, 1000.0], dtype="Float64"),
            "total_volume_ton": pd.array([15.0, 15.0, 3.0], dtype="Float64"),
            "rank": [0, 0, 1],
        }
    )
    return RankedDestinations(table=table, axis_order=["Poland", "Germany"])


def test_hover_text_rounds_to_whole_numbers() -> None:
    row = {
        "hs_code": "6309",
        "exportbestemming": "Germany",
        "volume_ton": 10.4,
        "average_value_per_tonne_usd": 4999.6,
        "total_volume_ton": 15.6,
    }

    text = hover_text(row, 2023)

    assert text.split("<br>") == [
        "6309-export naar Germany in 2023",
        "Volume (in ton): 10",
        "Gemiddelde waarde per ton (USD): 5000",
        "Totale export naar Germany (in ton): 16",
    ]


def test_hover_text_marks_missing_and_infinite_values() -> None:
    row = {
        "hs_code": "6310",
        "exportbestemming": "Ghana",
        "volume_ton": pd.NA,
        "average_value_per_tonne_usd": float("inf"),
        "total_volume_ton": None,
    }

    text = hover_text(row, 2023)

    assert "Volume (in ton): n/a" in text
    assert "Gemiddelde waarde per ton (USD): inf" in text
    assert "Totale export naar Ghana (in ton): n/a" in text


def test_build_bar_chart_stacks_codes_horizontally() -> None:
    fig = build_bar_chart(_ranked(), ExportConfig())

    assert {trace.name for trace in fig.data} == {"6309", "6310"}
    assert all(trace.orientation == "h" for trace in fig.data)
    assert fig.layout.barmode == "stack"
    assert list(fig.layout.yaxis.categoryarray) == ["Poland", "Germany"]
    assert fig.layout.legend.title.text == LEGEND_TITLE
    assert fig.layout.xaxis.title.text == "Volume (in ton)"
    assert fig.layout.yaxis.title.text == "Exportbestemming"


def test_build_bar_chart_titles_and_caption() -> None:
    fig = build_bar_chart(_ranked(), ExportConfig(top_n=30, year=2023))

    title = fig.layout.title.text
    assert title.startswith("Top 30 exportbestemmingen gebruikt textiel, Nederland (2023)")
    assert SUBTITLE in title
    assert any(annotation.text == CAPTION for annotation in fig.layout.annotations)


def test_build_bar_chart_hover_shows_only_hover_text() -> None:
    fig = build_bar_chart(_ranked())

    rags = next(trace for trace in fig.data if trace.name == "6310")
    assert rags.hovertemplate == "%{customdata[0]}<extra></extra>"
    assert rags.customdata[0][0].startswith("6310-export naar Germany in 2023")
    assert "Gemiddelde waarde per ton (USD): 2000" in rags.customdata[0][0]


def test_build_bar_chart_missing_volume_renders_gap() -> None:
    ranked = _ranked()
    ranked.table.loc[1, "volume_ton"] = pd.NA

    fig = build_bar_chart(ranked)

    rags = next(trace for trace in fig.data if trace.name == "6310")
    assert pd.isna(rags.x[0])
    assert "Volume (in ton): n/a" in rags.customdata[0][0]


def test_build_bar_chart_empty_table() -> None:
    ranked = RankedDestinations(
        table=pd.DataFrame(columns=["exportbestemming", "hs_code", "volume_ton"])
    )

    fig = build_bar_chart(ranked)

    assert len(fig.data) == 0
    assert SUBTITLE in fig.layout.title.text


def test_subtitle_names_both_hs_root_codes() -> None:
    assert SUBTITLE == (
        "Gebruikte kleding en textiel (6309) en Vodden en lompen (6310)"
    )
    assert f"({HS_USED_CLOTHING[:4]})" in SUBTITLE
    assert f"({HS_RAGS_ROOT})" in SUBTITLE
    assert all(code.startswith(HS_RAGS_ROOT) for code in HS_RAGS_SUBCODES)


def test_write_chart_writes_self_contained_html(tmp_path: Path) -> None:
    out = tmp_path / "nested" / "bestemmingen.html"

    result = write_chart(build_bar_chart(_ranked()), out)

    assert result == out
    html = out.read_text(encoding="utf-8")
    assert "<html" in html
    assert "<script src=\"http" not in html
    assert len(html) > 1_000_000
    assert "Germany" in html
    assert not out.with_suffix(out.suffix + ".tmp").exists()
