"""
Data preparation shared by both pyramid renderers.

`prepare_pyramid_data` accepts either a line list (config.grouped is False) or
a table that is already aggregated per age group and sex, validates it up
front, and returns one frame with columns

    age_group, age_lower, sex, value, lowercl, uppercl

ordered by the numeric lower bound of the age group and then by sex.
"""

from __future__ import annotations
import logging
from typing import List

import pandas as pd

from age_grouping import group_for_pyramid, order_pyramid_rows, parse_age_bounds, require_sex
from pyramid_config import PyramidConfig, VarMap
from utils import ValidationError, coerce_numeric, require_columns, require_frame

logger = logging.getLogger(__name__)

PYRAMID_COLUMNS = ["age_group", "age_lower", "sex", "value", "lowercl", "uppercl"]
GROUPED_KEYS = ("age_group", "sex", "value")
CL_KEYS = ("lowercl", "uppercl")


# ---------- Validation ----------
def _unmapped(var_map: VarMap, keys) -> List[str]:
    return [k for k in keys if var_map.column(k) is None]

def validate_inputs(df, config: PyramidConfig) -> pd.DataFrame:
    """Check every precondition before any transformation runs."""
    df = require_frame(df)
    vm = config.var_map

    if config.grouped:
        unmapped = _unmapped(vm, GROUPED_KEYS)
        if unmapped:
            raise ValidationError("For grouped data, var_map must include 'age_group', 'sex', and 'value'")
        require_columns(df, [vm.column(k) for k in GROUPED_KEYS], what="grouped data")
        if config.conf_limits:
            if _unmapped(vm, CL_KEYS):
                raise ValidationError(
                    "conf_limits is True but var_map does not map both 'lowercl' and 'uppercl'"
                )
            require_columns(df, [vm.lowercl, vm.uppercl], what="confidence limits")
    else:
        if config.conf_limits:
            raise ValidationError(
                "conf_limits requires grouped data with lowercl/uppercl columns; a line list has none"
            )
        has_age = vm.age is not None and vm.age in df.columns
        has_dob = vm.date_of_birth is not None and vm.date_of_birth in df.columns
        if not (has_age or has_dob):
            raise ValidationError(
                f"Line list needs an age ({vm.age!r}) or date_of_birth ({vm.date_of_birth!r}) column. "
                f"Found: {list(df.columns)}"
            )
    require_sex(df, vm.sex)
    return df


# ---------- Grouped input ----------
def normalise_grouped(df: pd.DataFrame, var_map: VarMap) -> pd.DataFrame:
    """Rename the caller's grouped columns and attach a numeric age_lower sort key."""
    values = coerce_numeric(df[var_map.value])
    if values.isna().any():
        raise ValidationError(f"value column {var_map.value!r} has missing or non-numeric entries")
    if (values < 0).any():
        raise ValidationError(f"value column {var_map.value!r} has negative entries")

    labels = df[var_map.age_group].astype(str)
    rows = pd.DataFrame({
        "age_group": labels.to_numpy(),
        "age_lower": [parse_age_bounds(lbl)[0] for lbl in labels],
        "sex": df[var_map.sex].astype(str).to_numpy(),
        "value": values.to_numpy(),
    })
    unparsed = rows.loc[rows["age_lower"].isna(), "age_group"].unique()
    if len(unparsed):
        logger.warning("Age groups without a leading number are placed last: %s", list(unparsed))
    return rows


# ---------- Confidence limits ----------
def resolve_confidence_limits(rows: pd.DataFrame, source: pd.DataFrame, var_map: VarMap,
                              conf_limits: bool) -> pd.DataFrame:
    """
    Attach lowercl/uppercl to rows (aligned by position with source).

    Disabled: both are set to value and never rendered. Enabled: copied from
    the mapped source columns; a missing mapping is an error.
    """
    rows = rows.copy()
    if not conf_limits:
        rows["lowercl"] = rows["value"]
        rows["uppercl"] = rows["value"]
        return rows

    if var_map.lowercl is None or var_map.uppercl is None:
        raise ValidationError("conf_limits is True but var_map does not map both 'lowercl' and 'uppercl'")
    require_columns(source, [var_map.lowercl, var_map.uppercl], what="confidence limits")

    lower = coerce_numeric(source[var_map.lowercl]).to_numpy()
    upper = coerce_numeric(source[var_map.uppercl]).to_numpy()
    rows["lowercl"] = lower
    rows["uppercl"] = upper
    if rows[["lowercl", "uppercl"]].isna().any().any():
        raise ValidationError("Confidence limit columns have missing or non-numeric entries")
    bad = (rows["lowercl"] > rows["value"]) | (rows["value"] > rows["uppercl"])
    if bad.any():
        raise ValidationError(
            f"Confidence limits must satisfy lowercl <= value <= uppercl; violated in rows {list(rows.index[bad][:5])}"
        )
    return rows


# ---------- Dispatch ----------
def prepare_pyramid_data(df, config: PyramidConfig) -> pd.DataFrame:
    df = validate_inputs(df, config)
    vm = config.var_map

    if config.grouped:
        rows = normalise_grouped(df, vm)
        rows = resolve_confidence_limits(rows, df, vm, config.conf_limits)
        rows = order_pyramid_rows(rows)
    else:
        rows = group_for_pyramid(df, vm, config.age_breakpoints, config.reference_date)
        rows = resolve_confidence_limits(rows, df, vm, False)
    return rows[PYRAMID_COLUMNS]


def age_levels(rows: pd.DataFrame) -> List[str]:
    """Age-group labels in plotting order."""
    if isinstance(rows["age_group"].dtype, pd.CategoricalDtype):
        return [str(c) for c in rows["age_group"].cat.categories]
    return list(pd.unique(rows["age_group"].astype(str)))
