import math
from datetime import date

import pytest

from pyramid_config import PyramidConfig, VarMap, load_pyramid_config, validate_breakpoints
from utils import ValidationError


def test_defaults():
    cfg = PyramidConfig()
    assert cfg.colours == ("#440154", "#2196F3")
    assert cfg.x_breaks == 10
    assert cfg.age_breakpoints == (0, 5, 19, 65, math.inf)
    assert cfg.legend_position == "top"
    assert cfg.var_map == VarMap()
    assert cfg.var_map.lowercl is None
    assert cfg.reference_date == date.today()


def test_from_dict_normalises_nested_values():
    cfg = PyramidConfig.from_dict({
        "var_map": {"age": "AGE", "sex": "SEX"},
        "age_breakpoints": [0, 15, 45],
        "age_calc_refdate": "2024-06-30",
        "colours": ["red", "blue"],
    })
    assert cfg.var_map.age == "AGE"
    assert cfg.var_map.date_of_birth == "date_of_birth"
    assert cfg.age_breakpoints == (0.0, 15.0, 45.0)
    assert cfg.age_calc_refdate == date(2024, 6, 30)
    assert cfg.colours == ("red", "blue")


def test_from_dict_rejects_unknown_keys():
    with pytest.raises(ValidationError):
        PyramidConfig.from_dict({"colour": ["red", "blue"]})
    with pytest.raises(ValidationError):
        VarMap.from_dict({"agegroup": "x"})


@pytest.mark.parametrize("bps", [[0], [0, 5, 5], [10, 5], [0, math.inf, 100], "abc"])
def test_bad_breakpoints(bps):
    with pytest.raises(ValidationError):
        validate_breakpoints(bps)


def test_bad_config_values():
    with pytest.raises(ValidationError):
        PyramidConfig(colours=("red",))
    with pytest.raises(ValidationError):
        PyramidConfig(x_breaks=0)
    with pytest.raises(ValidationError):
        PyramidConfig(text_size=0)
    with pytest.raises(ValidationError):
        PyramidConfig(age_breakpoints=(5, 0))


def test_load_yaml(tmp_path):
    p = tmp_path / "config.yaml"
    p.write_text(
        "pyramid:\n"
        "  grouped: true\n"
        "  legend_position: left\n"
        "  age_breakpoints: [0, 5, .inf]\n"
        "  var_map:\n"
        "    lowercl: lo\n"
        "    uppercl: hi\n",
        encoding="utf-8",
    )
    cfg = load_pyramid_config(p)
    assert cfg.grouped is True
    assert cfg.legend_position == "left"
    assert cfg.age_breakpoints == (0.0, 5.0, math.inf)
    assert (cfg.var_map.lowercl, cfg.var_map.uppercl) == ("lo", "hi")


def test_load_yaml_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_pyramid_config(tmp_path / "nope.yaml")


@pytest.mark.parametrize("colours", ["purple", ["purple"], ["purple", "not-a-colour"], 5])
def test_bad_colours_rejected_at_construction(colours):
    with pytest.raises(ValidationError):
        PyramidConfig(grouped=True, colours=colours)


def test_named_and_hex_colours_accepted():
    cfg = PyramidConfig(colours=["purple", "#2196F3"])
    assert cfg.colours == ("purple", "#2196F3")


def test_yaml_single_colour_rejected(tmp_path):
    p = tmp_path / "config.yaml"
    p.write_text("colours: purple\n", encoding="utf-8")
    with pytest.raises(ValidationError):
        load_pyramid_config(p)


@pytest.mark.parametrize("key,value", [("x_breaks", "ten"), ("x_breaks", None), ("text_size", "big")])
def test_non_numeric_sizes_raise_validation_error(key, value):
    with pytest.raises(ValidationError, match=key):
        PyramidConfig(**{key: value})
