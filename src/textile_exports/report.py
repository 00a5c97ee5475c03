"""HTML chart writer — produces the interactive destinations bar chart."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from textile_exports import HS_RAGS_ROOT, HS_USED_CLOTHING
from textile_exports.models import ExportConfig, RankedDestinations

# ── Labels ───────────────────────────────────────────────────────

TITLE_TEMPLATE = "Top {top_n} exportbestemmingen gebruikt textiel, Nederland ({year})"
SUBTITLE = (
    f"Gebruikte kleding en textiel ({HS_USED_CLOTHING[:4]}) "
    f"en Vodden en lompen ({HS_RAGS_ROOT})"
)
CAPTION = "Bron: UN COMTRADE"
X_LABEL = "Volume (in ton)"
Y_LABEL = "Exportbestemming"
LEGEND_TITLE = "HS Classificatie"
MISSING_LABEL = "n/a"

_HOVER_TEMPLATE = "%{customdata[0]}<extra></extra>"


# ── Helpers ──────────────────────────────────────────────────────


def _format_rounded(value: Any) -> str:
    """Round to a whole number; missing -> ``n/a``, infinite -> ``inf``."""
    if pd.isna(value):
        return MISSING_LABEL
    number = float(value)
    if np.isinf(number):
        return "inf" if number > 0 else "-inf"
    return f"{number:.0f}"


def _text(value: Any) -> str:
    return MISSING_LABEL if pd.isna(value) else str(value)


def hover_text(row: Mapping[str, Any], year: int) -> str:
    """Build the tooltip for one destination x HS code segment."""
    code = _text(row.get("hs_code"))
    destination = _text(row.get("exportbestemming"))
    lines = [
        f"{code}-export naar {destination} in {year}",
        f"Volume (in ton): {_format_rounded(row.get('volume_ton'))}",
        "Gemiddelde waarde per ton (USD): "
        f"{_format_rounded(row.get('average_value_per_tonne_usd'))}",
        f"Totale export naar {destination} (in ton): "
        f"{_format_rounded(row.get('total_volume_ton'))}",
    ]
    return "<br>".join(lines)


def _chart_frame(ranked: RankedDestinations, year: int) -> pd.DataFrame:
    table = ranked.table
    frame = pd.DataFrame(
        {
            "exportbestemming": [_text(v) for v in table["exportbestemming"]],
            "hs_code": [_text(v) for v in table["hs_code"]],
            "volume_ton": table["volume_ton"].to_numpy(dtype="float64", na_value=np.nan),
        }
    )
    frame["hover_text"] = [hover_text(row, year) for row in table.to_dict("records")]
    return frame


# ── Public API ───────────────────────────────────────────────────


def build_bar_chart(
    ranked: RankedDestinations, config: ExportConfig | None = None
) -> go.Figure:
    """Horizontal stacked bar chart: one bar per destination, stacked by HS code.

    Bars follow ``ranked.axis_order`` bottom-up, so the largest destination
    sits at the top.  Missing volumes show up as absent segments.
    """
    if config is None:
        config = ExportConfig()

    title = TITLE_TEMPLATE.format(top_n=config.top_n, year=config.year)
    labels = {"volume_ton": X_LABEL, "exportbestemming": Y_LABEL, "hs_code": LEGEND_TITLE}

    if ranked.table.empty:
        fig = go.Figure()
        fig.update_layout(xaxis_title=X_LABEL, yaxis_title=Y_LABEL)
    else:
        frame = _chart_frame(ranked, config.year)
        fig = px.bar(
            frame,
            x="volume_ton",
            y="exportbestemming",
            color="hs_code",
            orientation="h",
            barmode="stack",
            custom_data=["hover_text"],
            category_orders={
                "exportbestemming": list(ranked.axis_order),
                "hs_code": sorted(frame["hs_code"].unique()),
            },
            labels=labels,
        )
        fig.update_traces(hovertemplate=_HOVER_TEMPLATE)

    fig.update_yaxes(categoryorder="array", categoryarray=list(ranked.axis_order))
    fig.update_layout(
        title_text=f"{title}<br><sup>{SUBTITLE}</sup>",
        legend_title_text=LEGEND_TITLE,
        margin={"b": 90},
    )
    fig.add_annotation(
        text=CAPTION,
        xref="paper",
        yref="paper",
        x=1,
        y=-0.12,
        xanchor="right",
        yanchor="top",
        showarrow=False,
    )
    return fig


def write_chart(fig: go.Figure, path: Path) -> Path:
    """Write *fig* as a self-contained HTML page to *path* (atomic)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    fig.write_html(str(tmp_path), include_plotlyjs=True, full_html=True)
    tmp_path.replace(path)
    return path
