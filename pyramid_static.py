# pyramid_static.py
# Static (matplotlib) age-sex pyramid: males to the left, females to the right.

from __future__ import annotations
import logging
from typing import Dict

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
from matplotlib.figure import Figure
from matplotlib.ticker import FuncFormatter, MaxNLocator
import scienceplots  # noqa: F401  registers the "science" style sheets

from pyramid_config import PyramidConfig
from pyramid_data import age_levels
from utils import ValidationError

logger = logging.getLogger(__name__)

# "minimal" theme: no grid, black axis lines, open top/right
MINIMAL_RC = {
    "axes.grid": False,
    "axes.edgecolor": "black",
    "axes.spines.top": False,
    "axes.spines.right": False,
    "xtick.top": False,
    "ytick.right": False,
    "xtick.minor.visible": False,
    "ytick.minor.visible": False,
    "legend.frameon": False,
}

LEGEND_PLACEMENT: Dict[str, Dict] = {
    "top": dict(loc="lower center", bbox_to_anchor=(0.5, 1.02), ncol=2),
    "bottom": dict(loc="upper center", bbox_to_anchor=(0.5, -0.15), ncol=2),
    "left": dict(loc="center right", bbox_to_anchor=(-0.18, 0.5), ncol=1),
    "right": dict(loc="center left", bbox_to_anchor=(1.02, 0.5), ncol=1),
}


def _legend_kwargs(position: str) -> Dict:
    return dict(LEGEND_PLACEMENT.get(position, LEGEND_PLACEMENT["bottom"]))


def _abs_label(x, _pos) -> str:
    return f"{abs(x) + 0.0:g}"


def render_static(rows: pd.DataFrame, config: PyramidConfig) -> Figure:
    """Draw prepared pyramid rows (see pyramid_data) as a back-to-back horizontal bar chart."""
    sex = rows["sex"].astype(str)
    others = sorted(set(sex) - {"Male", "Female"})
    if others:
        logger.warning("Static pyramid only plots Male/Female; dropping sex values %s", others)
    if not sex.isin(["Male", "Female"]).any():
        raise ValidationError("No 'Male' or 'Female' rows to plot")

    age_order = age_levels(rows)
    ypos = {g: i for i, g in enumerate(age_order)}

    with plt.style.context(list(config.style)), plt.rc_context(MINIMAL_RC):
        fig, ax = plt.subplots(figsize=config.figsize)

        extent = 0.0
        for name, sign, colour in (("Male", -1, config.colours[0]), ("Female", 1, config.colours[1])):
            d = rows[sex == name]
            if d.empty:
                continue
            y = d["age_group"].astype(str).map(ypos).to_numpy()
            x = sign * d["value"].to_numpy(float)
            ax.barh(y, x, color=colour, label=name, align="center")
            extent = max(extent, float(np.abs(x).max()))

            if config.conf_limits:
                v = d["value"].to_numpy(float)
                lo = d["lowercl"].to_numpy(float)
                hi = d["uppercl"].to_numpy(float)
                # xerr is (left, right) distance; mirroring swaps which bound is on the left
                xerr = np.vstack([hi - v, v - lo]) if sign < 0 else np.vstack([v - lo, hi - v])
                ax.errorbar(x, y, xerr=xerr, fmt="none", ecolor="black",
                            elinewidth=0.8, capsize=2)
                extent = max(extent, float(hi.max()))

        lim = extent * 1.05 if extent > 0 else 1.0
        ax.set_xlim(-lim, lim)
        ax.xaxis.set_major_locator(MaxNLocator(nbins=config.x_breaks, symmetric=True))
        ax.xaxis.set_major_formatter(FuncFormatter(_abs_label))
        ax.axvline(0, color="black", linewidth=0.8)

        ax.set_yticks(range(len(age_order)))
        ax.set_yticklabels(age_order)
        ax.tick_params(axis="both", labelsize=config.text_size)
        ax.grid(False)

        # x_title names the counts, which run horizontally here (no coordinate flip)
        ax.set_xlabel(config.x_title, fontsize=config.text_size, fontweight="bold")
        ax.set_ylabel(config.y_title, fontsize=config.text_size, fontweight="bold")
        if config.legend_title:
            ax.set_title(config.legend_title, fontsize=config.text_size + 2, fontweight="bold")

        if config.legend_position != "none":
            ax.legend(fontsize=config.text_size, title=None, **_legend_kwargs(config.legend_position))

        fig.tight_layout()
    return fig
