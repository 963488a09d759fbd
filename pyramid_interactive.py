"""
Interactive (plotly) age-sex pyramid.

Male values are negated so males extend left and females right from a shared
zero axis. Tick positions are chosen on the positive side with a "pretty"
1/2/5 x 10^k step, mirrored to the negative side and labelled with their
absolute value.
"""

from __future__ import annotations
import logging
import math
from typing import Dict, List, Tuple

import numpy as np
import pandas as pd
import plotly.graph_objects as go

from pyramid_config import PyramidConfig
from pyramid_data import age_levels
from utils import ValidationError

logger = logging.getLogger(__name__)

LEGEND_POSITIONS: Dict[str, Dict] = {
    "top": dict(orientation="h", xanchor="center", x=0.5, y=1.1),
    "bottom": dict(orientation="h", xanchor="center", x=0.5, y=-0.2),
    "left": dict(orientation="v", xanchor="right", x=-0.1, y=0.5, yanchor="middle"),
    "right": dict(orientation="v", xanchor="left", x=1.1, y=0.5, yanchor="middle"),
}


def get_plotly_legend_position(position: str) -> Dict:
    """Legend layout for a position key; unrecognised keys get the bottom entry."""
    if position not in LEGEND_POSITIONS:
        logger.debug("Unknown legend_position %r, using bottom", position)
    return dict(LEGEND_POSITIONS.get(position, LEGEND_POSITIONS["bottom"]))


# ---------- Ticks ----------
def pretty_breaks(max_value: float, n: int = 5) -> List[float]:
    """
    Ticks from 0 up to (at least) max_value, evenly spaced with a step from
    {1, 2, 5, 10} x 10^k, picking the step whose interval count is closest to n.
    """
    if not max_value > 0:
        return [0.0]
    n = max(int(n), 1)
    k = math.floor(math.log10(max_value / n))
    best = None
    for e in (k - 1, k, k + 1):
        for m in (1, 2, 5, 10):
            step = m * 10.0 ** e
            count = math.ceil(max_value / step - 1e-9)
            score = (abs(count - n), step)
            if best is None or score < best[0]:
                best = (score, step, count)
    _, step, count = best
    return [round(i * step, 10) for i in range(count + 1)]


def symmetric_ticks(max_range: float, x_breaks: int) -> Tuple[List[float], List[str]]:
    """Sorted union of -ticks and +ticks, labelled with absolute values."""
    positive = pretty_breaks(max_range, math.ceil(x_breaks / 2))
    tickvals = sorted(set(positive) | {-t for t in positive})
    # -0.0 and 0.0 collapse in the set; normalise the sign for the label
    ticktext = [f"{abs(t) + 0.0:g}" for t in tickvals]
    return tickvals, ticktext


# ---------- Data ----------
def split_and_mirror(rows: pd.DataFrame, conf_limits: bool) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """Male and Female subsets with the male side negated; other sexes are dropped."""
    sex = rows["sex"].astype(str)
    others = sorted(set(sex) - {"Male", "Female"})
    if others:
        logger.warning("Interactive pyramid only plots Male/Female; dropping sex values %s", others)

    male = rows[sex == "Male"].copy()
    female = rows[sex == "Female"].copy()
    if male.empty and female.empty:
        raise ValidationError("No 'Male' or 'Female' rows to plot")

    male["value"] = -male["value"]
    if conf_limits:
        male["lowercl"] = -male["lowercl"]
        male["uppercl"] = -male["uppercl"]
    return male, female


def axis_max_range(male: pd.DataFrame, female: pd.DataFrame, conf_limits: bool) -> float:
    cols = ["value", "lowercl", "uppercl"] if conf_limits else ["value"]
    all_x = np.concatenate([male[cols].to_numpy(float).ravel(), female[cols].to_numpy(float).ravel()])
    return float(max(abs(all_x.min()), all_x.max()))


def _num(v: float) -> str:
    r = round(float(v), 2)
    return str(int(r)) if r == int(r) else str(r)


def _hover(label: str, values, groups) -> List[str]:
    return [f"{label}: {_num(abs(v))}<br>Age: {g}" for v, g in zip(values, groups)]


# ---------- Render ----------
def render_interactive(rows: pd.DataFrame, config: PyramidConfig) -> go.Figure:
    """Build the plotly figure from prepared pyramid rows (see pyramid_data)."""
    conf = config.conf_limits
    male, female = split_and_mirror(rows, conf)

    max_range = axis_max_range(male, female, conf)
    tickvals, ticktext = symmetric_ticks(max_range, config.x_breaks)
    span = max_range * 1.05 if max_range > 0 else 1.0

    levels = age_levels(rows)

    fig = go.Figure()
    for name, data, colour in (("Male", male, config.colours[0]), ("Female", female, config.colours[1])):
        groups = data["age_group"].astype(str).tolist()
        fig.add_trace(go.Bar(
            x=data["value"].tolist(),
            y=groups,
            name=name,
            orientation="h",
            marker=dict(color=colour),
            hoverinfo="text",
            hovertext=_hover(name, data["value"], groups),
        ))

    if conf:
        for name, data, colour in (("Male", male, config.colours[0]), ("Female", female, config.colours[1])):
            groups = data["age_group"].astype(str).tolist()
            for col, bound in (("lowercl", "Lower"), ("uppercl", "Upper")):
                fig.add_trace(go.Scatter(
                    x=data[col].tolist(),
                    y=groups,
                    mode="markers",
                    name=f"{name} CI",
                    marker=dict(color=colour),
                    showlegend=False,
                    hoverinfo="text",
                    hovertext=_hover(f"{name} {bound} CI", data[col], groups),
                ))

    fig.update_layout(
        title=config.legend_title,
        xaxis=dict(
            title=dict(text=config.x_title, font=dict(size=config.text_size)),
            tickfont=dict(size=config.text_size),
            zeroline=True,
            showgrid=False,
            showline=True,
            linecolor="black",
            tickmode="array",
            tickvals=tickvals,
            ticktext=ticktext,
            range=[-span, span],
        ),
        yaxis=dict(
            title=dict(text=config.y_title, font=dict(size=config.text_size)),
            tickfont=dict(size=config.text_size),
            zeroline=True,
            showgrid=False,
            showline=True,
            linecolor="black",
            categoryorder="array",
            categoryarray=levels,
        ),
        barmode="overlay",
        font=dict(family="Arial"),
        hoverlabel=dict(bgcolor="white", font=dict(size=12)),
        showlegend=True,
        legend=get_plotly_legend_position(config.legend_position),
    )
    return fig
