# age_sex_pyramid.py
# Public entry point: prepare data once, then render it statically or interactively.
# Also runnable as a command (`epipyramid data.csv --config config.yaml`).

from __future__ import annotations
from dataclasses import dataclass, replace
from pathlib import Path
import argparse
from typing import Optional, Union

import pandas as pd
import matplotlib.pyplot as plt
from matplotlib.figure import Figure
import plotly.graph_objects as go

from pyramid_config import PyramidConfig, load_pyramid_config
from pyramid_data import prepare_pyramid_data
from pyramid_interactive import render_interactive
from pyramid_static import render_static
from utils import read_csv_smart, resolve_path

STATIC = "static"
INTERACTIVE = "interactive"


@dataclass(frozen=True)
class PyramidChart:
    """A rendered pyramid tagged with its kind, plus the rows it was drawn from."""
    kind: str
    figure: Union[Figure, go.Figure]
    data: pd.DataFrame

    @property
    def is_interactive(self) -> bool:
        return self.kind == INTERACTIVE

    def save(self, path: Union[str, Path], dpi: int = 300) -> Path:
        outp = Path(path)
        outp.parent.mkdir(parents=True, exist_ok=True)
        if self.is_interactive:
            self.figure.write_html(str(outp), include_plotlyjs="cdn")
        else:
            self.figure.savefig(outp, dpi=dpi, bbox_inches="tight")
        return outp


def age_sex_pyramid(df: pd.DataFrame, config: Optional[PyramidConfig] = None,
                    dynamic: bool = False, **overrides) -> PyramidChart:
    """
    Build an age-sex pyramid from a line list or from grouped counts.

    Any PyramidConfig field may be passed as a keyword to override `config`
    for this call. All validation happens before anything is drawn.
    """
    config = config or PyramidConfig()
    if overrides:
        config = replace(config, **overrides)

    rows = prepare_pyramid_data(df, config)
    if dynamic:
        return PyramidChart(INTERACTIVE, render_interactive(rows, config), rows)
    return PyramidChart(STATIC, render_static(rows, config), rows)


def main(argv=None):
    ap = argparse.ArgumentParser(description="Draw an age-sex pyramid from a CSV line list or grouped table.")
    ap.add_argument("data", help="CSV file (line list, or grouped counts with --grouped)")
    ap.add_argument("--config", default=None, help="YAML config (top-level keys or a 'pyramid:' section)")
    ap.add_argument("--dynamic", action="store_true", help="write an interactive HTML chart instead of a static figure")
    ap.add_argument("--grouped", action="store_true", help="input is already aggregated by age group and sex")
    ap.add_argument("--out", default=None, help="output path (default ./figures/age_sex_pyramid.pdf or .html)")
    args = ap.parse_args(argv)

    config = load_pyramid_config(args.config) if args.config else PyramidConfig()
    if args.grouped:
        config = replace(config, grouped=True)

    df = read_csv_smart(Path(args.data))
    chart = age_sex_pyramid(df, config, dynamic=args.dynamic)

    default_name = "age_sex_pyramid.html" if args.dynamic else "age_sex_pyramid.pdf"
    outp = chart.save(args.out or resolve_path(Path.cwd(), f"figures/{default_name}"))
    if not chart.is_interactive:
        plt.close(chart.figure)
    print(f"Age-sex pyramid ({chart.kind}, {len(chart.data)} age-sex cells) saved → {outp}")
    return outp


if __name__ == "__main__":
    main()
