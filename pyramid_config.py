"""
Typed configuration for age-sex pyramids.

`VarMap` maps the logical field names used throughout the library to the
caller's column names. `PyramidConfig` enumerates every rendering option with
its default; both are frozen so a config is a value for the whole render.
"""

from __future__ import annotations
from dataclasses import dataclass, field, fields
from datetime import date
import math
from pathlib import Path
from typing import Any, Mapping, Optional, Tuple

import pandas as pd
from matplotlib.colors import is_color_like

from utils import ValidationError, load_config


DEFAULT_AGE_BREAKPOINTS: Tuple[float, ...] = (0, 5, 19, 65, math.inf)
DEFAULT_COLOURS: Tuple[str, str] = ("#440154", "#2196F3")


@dataclass(frozen=True)
class VarMap:
    """Logical field name -> column name in the caller's data frame.

    None means "not mapped".
    """
    age: Optional[str] = "age"
    date_of_birth: Optional[str] = "date_of_birth"
    sex: Optional[str] = "sex"
    age_group: Optional[str] = "age_group"
    value: Optional[str] = "value"
    lowercl: Optional[str] = None
    uppercl: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "VarMap":
        if data is None:
            return cls()
        if isinstance(data, VarMap):
            return data
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValidationError(f"Unknown var_map keys: {unknown} (allowed: {sorted(known)})")
        return cls(**{k: (None if v is None else str(v)) for k, v in data.items()})

    def column(self, name: str) -> Optional[str]:
        return getattr(self, name)


def validate_breakpoints(breakpoints) -> Tuple[float, ...]:
    """Return breakpoints as a tuple of floats, or raise ValidationError.

    There must be at least two, strictly increasing; only the last may be infinite.
    """
    try:
        bps = tuple(float(b) for b in breakpoints)
    except (TypeError, ValueError) as err:
        raise ValidationError(f"age_breakpoints must be numeric: {breakpoints!r}") from err
    if len(bps) < 2:
        raise ValidationError(f"age_breakpoints needs at least two boundaries, got {len(bps)}")
    if any(math.isnan(b) for b in bps):
        raise ValidationError("age_breakpoints must not contain NaN")
    if any(math.isinf(b) for b in bps[:-1]) or bps[-1] == -math.inf:
        raise ValidationError("only the last age breakpoint may be infinite")
    if any(hi <= lo for lo, hi in zip(bps, bps[1:])):
        raise ValidationError(f"age_breakpoints must be strictly increasing: {list(bps)}")
    return bps


def validate_colours(colours) -> Tuple[str, ...]:
    """One valid matplotlib colour per sex (Male, Female), at least two."""
    # a bare string is one colour, not a sequence of characters
    try:
        cols = (colours,) if isinstance(colours, str) else tuple(colours)
    except TypeError as err:
        raise ValidationError(f"colours must be a list of colours, got {colours!r}") from err
    if len(cols) < 2:
        raise ValidationError(f"colours needs one entry per sex, got {list(cols)}")
    bad = [c for c in cols if not is_color_like(c)]
    if bad:
        raise ValidationError(f"colours contains invalid colour values: {bad}")
    return cols


def _as_number(value, kind, name: str):
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be a number, got {value!r}")
    try:
        return kind(value)
    except (TypeError, ValueError) as err:
        raise ValidationError(f"{name} must be a number, got {value!r}") from err


def _to_date(value) -> Optional[date]:
    if value is None or type(value) is date:
        return value
    try:
        return pd.Timestamp(value).date()
    except (TypeError, ValueError) as err:
        raise ValidationError(f"age_calc_refdate is not a date: {value!r}") from err


@dataclass(frozen=True)
class PyramidConfig:
    var_map: VarMap = field(default_factory=VarMap)
    colours: Tuple[str, ...] = DEFAULT_COLOURS
    x_breaks: int = 10
    y_title: str = "Age group (years)"
    x_title: str = "Number of cases"
    text_size: float = 12
    conf_limits: bool = False
    age_breakpoints: Tuple[float, ...] = DEFAULT_AGE_BREAKPOINTS
    # None -> today's date, resolved when ages are derived
    age_calc_refdate: Optional[date] = None
    grouped: bool = False
    legend_position: str = "top"
    legend_title: str = ""
    style: Tuple[str, ...] = ("science", "no-latex")
    figsize: Tuple[float, float] = (7.0, 5.0)

    def __post_init__(self):
        # frozen: normalise through object.__setattr__
        object.__setattr__(self, "var_map", VarMap.from_dict(self.var_map))
        object.__setattr__(self, "colours", validate_colours(self.colours))
        object.__setattr__(self, "age_breakpoints", validate_breakpoints(self.age_breakpoints))
        object.__setattr__(self, "age_calc_refdate", _to_date(self.age_calc_refdate))
        object.__setattr__(self, "style", (self.style,) if isinstance(self.style, str) else tuple(self.style))
        object.__setattr__(self, "figsize", tuple(float(v) for v in self.figsize))

        x_breaks = _as_number(self.x_breaks, int, "x_breaks")
        if x_breaks < 1:
            raise ValidationError(f"x_breaks must be >= 1, got {self.x_breaks}")
        object.__setattr__(self, "x_breaks", x_breaks)
        text_size = _as_number(self.text_size, float, "text_size")
        if text_size <= 0:
            raise ValidationError(f"text_size must be positive, got {self.text_size}")
        object.__setattr__(self, "text_size", text_size)

    @property
    def reference_date(self) -> date:
        return self.age_calc_refdate or date.today()

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "PyramidConfig":
        data = dict(data or {})
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValidationError(f"Unknown config keys: {unknown}")
        return cls(**data)


def load_pyramid_config(config_path: str | Path = "config.yaml") -> PyramidConfig:
    """Read a YAML file (top-level keys or a `pyramid:` section) into a PyramidConfig."""
    cfg = load_config(config_path)
    if not isinstance(cfg, dict):
        raise ValidationError(f"{config_path}: expected a mapping at the top level")
    return PyramidConfig.from_dict(cfg.get("pyramid", cfg))
