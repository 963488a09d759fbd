import pandas as pd
import pytest
from matplotlib.figure import Figure

from pyramid_config import PyramidConfig, VarMap
from pyramid_data import prepare_pyramid_data
from pyramid_static import render_static
from utils import ValidationError


def _bars(ax):
    return [p for p in ax.patches if p.get_width() != 0 or p.get_height() != 0]


def test_scenario_minimal_grouped_input():
    df = pd.DataFrame({"age_group": ["0-4", "0-4"], "sex": ["Male", "Female"], "value": [100, 90]})
    cfg = PyramidConfig(grouped=True)
    fig = render_static(prepare_pyramid_data(df, cfg), cfg)
    assert isinstance(fig, Figure)
    ax = fig.axes[0]
    widths = sorted(p.get_width() for p in _bars(ax))
    assert widths == [-100, 90]


def test_styling(grouped_df):
    cfg = PyramidConfig(grouped=True, legend_title="Cases by age and sex", text_size=10)
    fig = render_static(prepare_pyramid_data(grouped_df, cfg), cfg)
    ax = fig.axes[0]
    assert ax.get_xlabel() == "Number of cases"
    assert ax.get_ylabel() == "Age group (years)"
    assert ax.xaxis.label.get_fontweight() == "bold"
    assert ax.get_title() == "Cases by age and sex"
    assert [t.get_text() for t in ax.get_yticklabels()] == ["0-4", "5-18", "19-64", "65+"]
    lo, hi = ax.get_xlim()
    assert lo == pytest.approx(-hi)
    assert hi == pytest.approx(160 * 1.05)
    assert not ax.spines["top"].get_visible()
    legend = ax.get_legend()
    assert [t.get_text() for t in legend.get_texts()] == ["Male", "Female"]


def test_tick_labels_are_absolute(grouped_df):
    cfg = PyramidConfig(grouped=True)
    fig = render_static(prepare_pyramid_data(grouped_df, cfg), cfg)
    ax = fig.axes[0]
    fmt = ax.xaxis.get_major_formatter()
    assert fmt(-50, 0) == "50"
    assert fmt(50, 0) == "50"


def test_confidence_limits_drawn(grouped_df):
    cfg = PyramidConfig(grouped=True, conf_limits=True, var_map=VarMap(lowercl="lowercl", uppercl="uppercl"))
    fig = render_static(prepare_pyramid_data(grouped_df, cfg), cfg)
    ax = fig.axes[0]
    assert len(ax.containers) == 4  # two bar series, two error-bar series
    assert ax.get_xlim()[1] == pytest.approx(170 * 1.05)


def test_legend_none(line_list):
    cfg = PyramidConfig(legend_position="none")
    fig = render_static(prepare_pyramid_data(line_list, cfg), cfg)
    assert fig.axes[0].get_legend() is None


def test_no_male_or_female_rows():
    cfg = PyramidConfig(grouped=True)
    rows = prepare_pyramid_data(pd.DataFrame({"age_group": ["0-4"], "sex": ["F"], "value": [1]}), cfg)
    with pytest.raises(ValidationError):
        render_static(rows, cfg)
