# src/govdrop/charts.py
from __future__ import annotations

import tempfile
import webbrowser
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import plotly.graph_objects as go

from govdrop.dec import dec, mul
from govdrop.distribution import Airdrop, Distrib
from govdrop.votes import VoteOption

PAGE_TITLE = "$ATONE distributions"

BAR_LABELS = ("Yes", "No", "NWV", "Abstain", "DNV", "Unstaked")

# name -> color, outer ring
SLICE_COLORS = {
    "Yes": "#ff8b87",
    "No": "#9FDFBF",
    "NWV": "#88d8b0",
    "Abstain": "#eac086",
    "DNV": "#ffcd94",
    "Unstaked": "#ffe0bd",
}

# name -> color, inner pie
GROUP_COLORS = {
    "Yes": "#ff8b87",
    "No+NWV": "#6cac8c",
    "Non voters": "#ffad60",
}

_HUNDRED = dec(100)


def distrib_percentages(d: Distrib) -> List[float]:
    """Percentages in BAR_LABELS order."""
    percs = d.vote_percentages()
    values = [
        percs[VoteOption.YES],
        percs[VoteOption.NO],
        percs[VoteOption.NO_WITH_VETO],
        percs[VoteOption.ABSTAIN],
        percs[VoteOption.EMPTY],
        d.unstaked_percentage(),
    ]
    return [float(mul(v, _HUNDRED)) for v in values]


def bar_chart(airdrops: Sequence[Airdrop]) -> go.Figure:
    fig = go.Figure()
    fig.add_trace(go.Bar(name="$ATOM", x=list(BAR_LABELS), y=distrib_percentages(airdrops[0].source)))
    for a in airdrops:
        fig.add_trace(go.Bar(name=f"$ATONE {a.params}", x=list(BAR_LABELS), y=distrib_percentages(a.result)))
    fig.update_layout(
        title="Votes distribution",
        barmode="group",
        legend={"orientation": "v", "x": 1.0, "xanchor": "right"},
        yaxis={"ticksuffix": "%"},
    )
    fig.update_traces(hovertemplate="%{y:.2f}%<extra>%{fullData.name}</extra>")
    return fig


def _groups(values: Sequence[float]) -> List[Tuple[str, float]]:
    yes, no, nwv, abstain, dnv, unstaked = values
    return [("Yes", yes), ("No+NWV", no + nwv), ("Non voters", abstain + dnv + unstaked)]


def pie_chart(title: str, d: Distrib) -> go.Figure:
    """Outer ring with the six buckets, inner pie with Yes / No+NWV / Non voters."""
    values = distrib_percentages(d)
    groups = _groups(values)
    fig = go.Figure()
    fig.add_trace(
        go.Pie(
            name="pie",
            labels=list(BAR_LABELS),
            values=values,
            hole=0.56,
            sort=False,
            marker={"colors": [SLICE_COLORS[k] for k in BAR_LABELS]},
            texttemplate="%{label}: %{value:.2f}%",
            hovertemplate="%{label}: %{value:.2f}%<extra></extra>",
            domain={"x": [0.0, 1.0], "y": [0.0, 1.0]},
        )
    )
    fig.add_trace(
        go.Pie(
            name="pie2",
            labels=[g for g, _ in groups],
            values=[v for _, v in groups],
            sort=False,
            textinfo="none",
            marker={"colors": [GROUP_COLORS[g] for g, _ in groups]},
            hovertemplate="%{label}: %{value:.2f}%<extra></extra>",
            domain={"x": [0.23, 0.77], "y": [0.23, 0.77]},
        )
    )
    fig.update_layout(title=title, showlegend=False)
    return fig


def page_figures(airdrops: Sequence[Airdrop]) -> List[go.Figure]:
    figs = [bar_chart(airdrops), pie_chart("$ATOM distribution", airdrops[0].source)]
    for a in airdrops:
        figs.append(pie_chart(f"$ATONE distribution {a.params}", a.result))
    return figs


def render_page(airdrops: Sequence[Airdrop], path: Optional[str | Path] = None) -> Path:
    """Write all charts to a single HTML page and return its path."""
    if not airdrops:
        raise ValueError("no airdrop to chart")
    figs = page_figures(airdrops)
    body = "\n".join(
        f.to_html(full_html=False, include_plotlyjs=("cdn" if i == 0 else False)) for i, f in enumerate(figs)
    )
    html = (
        "<!DOCTYPE html>\n<html>\n<head>\n<meta charset=\"utf-8\">\n"
        f"<title>{PAGE_TITLE}</title>\n</head>\n<body>\n{body}\n</body>\n</html>\n"
    )

    if path is None:
        with tempfile.NamedTemporaryFile("w", prefix="chart", suffix=".html", delete=False, encoding="utf-8") as f:
            f.write(html)
            return Path(f.name)

    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(html, encoding="utf-8")
    return p


def open_in_browser(path: str | Path) -> bool:
    return webbrowser.open(Path(path).resolve().as_uri())
