import pandas as pd
import plotly.graph_objects as go
import pytest
from matplotlib.figure import Figure

from age_sex_pyramid import INTERACTIVE, STATIC, age_sex_pyramid, main
from pyramid_config import PyramidConfig
from utils import ValidationError


def test_static_from_line_list(line_list):
    chart = age_sex_pyramid(line_list)
    assert chart.kind == STATIC
    assert isinstance(chart.figure, Figure)
    assert not chart.is_interactive
    assert len(chart.data) == 5


def test_interactive_from_grouped(grouped_df):
    chart = age_sex_pyramid(grouped_df, dynamic=True, grouped=True)
    assert chart.kind == INTERACTIVE
    assert isinstance(chart.figure, go.Figure)


def test_overrides_do_not_mutate_config(grouped_df):
    cfg = PyramidConfig(grouped=True)
    age_sex_pyramid(grouped_df, cfg, legend_title="x")
    assert cfg.legend_title == ""


def test_failure_renders_nothing(grouped_df):
    with pytest.raises(ValidationError):
        age_sex_pyramid(grouped_df, PyramidConfig(grouped=True, conf_limits=True))


def test_save(tmp_path, grouped_df):
    static = age_sex_pyramid(grouped_df, grouped=True).save(tmp_path / "p.png")
    interactive = age_sex_pyramid(grouped_df, grouped=True, dynamic=True).save(tmp_path / "p.html")
    assert static.exists() and static.stat().st_size > 0
    assert "plotly" in interactive.read_text(encoding="utf-8")


def test_cli(tmp_path, line_list, capsys):
    data = tmp_path / "cases.csv"
    line_list.to_csv(data, index=False)
    cfg = tmp_path / "config.yaml"
    cfg.write_text("pyramid:\n  legend_position: bottom\n  legend_title: Cases\n", encoding="utf-8")
    out = tmp_path / "figs" / "pyramid.png"

    written = main([str(data), "--config", str(cfg), "--out", str(out)])
    assert written == out and out.exists()
    assert "saved" in capsys.readouterr().out


def test_cli_grouped_interactive(tmp_path, grouped_df):
    data = tmp_path / "grouped.csv"
    grouped_df.to_csv(data, index=False)
    out = tmp_path / "pyramid.html"
    main([str(data), "--grouped", "--dynamic", "--out", str(out)])
    assert out.exists()
