"""
Age grouping for age-sex pyramids.

Turns a line list (one row per individual, with an age or a date of birth and
a sex) into counts per (age band, sex). Bands come from a list of breakpoints:
each consecutive pair gives a half-open band [lo, hi) labelled "lo-(hi-1)",
and the last breakpoint opens an unbounded band labelled "lo+".
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import date
import logging
import math
import re
from typing import List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from pyramid_config import DEFAULT_AGE_BREAKPOINTS, VarMap, validate_breakpoints
from utils import ValidationError, coerce_numeric, require_frame

logger = logging.getLogger(__name__)

SEX_ORDER = ("Male", "Female")
GROUP_COLUMNS = ["age_group", "age_lower", "sex", "value"]


@dataclass(frozen=True)
class AgeBand:
    """Half-open age interval [lower, upper); upper=inf means "no upper bound" (e.g. 65+)."""
    lower: float
    upper: float
    label: str

    def contains(self, age: float) -> bool:
        return self.lower <= age < self.upper


def _fmt_bound(x: float) -> str:
    return f"{x:g}"


def build_age_bands(breakpoints: Sequence[float] = DEFAULT_AGE_BREAKPOINTS) -> List[AgeBand]:
    bps = validate_breakpoints(breakpoints)
    if not math.isinf(bps[-1]):
        bps = bps + (math.inf,)
    bands = []
    for lo, hi in zip(bps, bps[1:]):
        if math.isinf(hi):
            label = f"{_fmt_bound(lo)}+"
        else:
            label = f"{_fmt_bound(lo)}-{_fmt_bound(hi - 1)}"
        bands.append(AgeBand(lower=lo, upper=hi, label=label))
    return bands


def parse_age_bounds(lbl) -> Tuple[float, float]:
    """
    Extract (age_min, age_max) from labels like '15–19', '60-64', '95+', '<1'.
    '95+' gives (95, inf) and '<1' gives (0, 0). Unparseable labels give (nan, nan).
    """
    if not isinstance(lbl, str):
        if isinstance(lbl, (int, float)) and not pd.isna(lbl):
            return float(lbl), float(lbl)
        return math.nan, math.nan
    # normalize en-dash/emdash to hyphen
    s = lbl.replace("–", "-").replace("—", "-").strip()
    if re.match(r"^\d+(\.\d+)?\s*\+$", s):
        return float(re.findall(r"\d+(?:\.\d+)?", s)[0]), math.inf
    if re.match(r"^<\s*\d+", s):
        hi = float(re.findall(r"\d+(?:\.\d+)?", s)[0])
        return 0.0, max(hi - 1, 0.0)
    nums = re.findall(r"\d+(?:\.\d+)?", s)
    if len(nums) >= 2 and s.startswith(nums[0]):
        return float(nums[0]), float(nums[1])
    if len(nums) == 1 and s.startswith(nums[0]):
        x = float(nums[0])
        return x, x
    return math.nan, math.nan


def ages_from_dob(dob: pd.Series, reference_date: date) -> pd.Series:
    """Whole years between each date of birth and reference_date (floor), NaN where unknown."""
    born = pd.to_datetime(dob, errors="coerce")
    ref = pd.Timestamp(reference_date)
    years = ref.year - born.dt.year
    # birthday not yet reached this year
    before = (born.dt.month > ref.month) | ((born.dt.month == ref.month) & (born.dt.day > ref.day))
    return (years - before.astype(float)).astype(float)


def resolve_ages(records: pd.DataFrame, var_map: VarMap, reference_date: Optional[date] = None) -> pd.Series:
    """
    One age per record: taken from the age column when it is mapped and present,
    otherwise (or where the age cell is empty) derived from date of birth.
    """
    age_col, dob_col = var_map.age, var_map.date_of_birth
    has_age = age_col is not None and age_col in records.columns
    has_dob = dob_col is not None and dob_col in records.columns
    if not (has_age or has_dob):
        raise ValidationError(
            f"Neither age ({age_col!r}) nor date_of_birth ({dob_col!r}) is a column of df. "
            f"Found: {list(records.columns)}"
        )

    ages = pd.Series(np.nan, index=records.index, dtype=float)
    if has_age:
        ages = coerce_numeric(records[age_col])
    if has_dob and ages.isna().any():
        derived = ages_from_dob(records[dob_col], reference_date or date.today())
        logger.debug("Deriving %d ages from %s", int(ages.isna().sum()), dob_col)
        ages = ages.fillna(derived)

    if ages.isna().any():
        bad = list(records.index[ages.isna()][:5])
        raise ValidationError(f"{int(ages.isna().sum())} records have no usable age or date of birth (rows {bad} ...)")
    if (ages < 0).any():
        bad = list(records.index[ages < 0][:5])
        raise ValidationError(f"Negative ages found (rows {bad} ...); check date_of_birth against age_calc_refdate")
    return ages


def assign_age_groups(ages: pd.Series, bands: Sequence[AgeBand]) -> pd.DataFrame:
    """Label every age with its band; returns columns age_group and age_lower."""
    lowers = np.array([b.lower for b in bands])
    idx = np.searchsorted(lowers, ages.to_numpy(dtype=float), side="right") - 1
    if (idx < 0).any():
        raise ValidationError(
            f"{int((idx < 0).sum())} ages fall below the first age breakpoint ({_fmt_bound(lowers[0])})"
        )
    return pd.DataFrame({
        "age_group": [bands[i].label for i in idx],
        "age_lower": lowers[idx],
    }, index=ages.index)


def require_sex(records: pd.DataFrame, sex_col: Optional[str]) -> None:
    """The sex column must exist and every record must carry a value."""
    if sex_col is None or sex_col not in records.columns:
        raise ValidationError(f"sex column {sex_col!r} not found in df. Found: {list(records.columns)}")
    sex = records[sex_col]
    blank = sex.isna() | sex.astype(str).str.strip().eq("")
    if blank.any():
        bad = list(records.index[blank][:5])
        raise ValidationError(f"{int(blank.sum())} records have no {sex_col!r} value (rows {bad} ...)")


def sex_order(values: pd.Series) -> List[str]:
    """Male, Female, then any other values in order of first appearance."""
    seen = list(pd.unique(values.dropna().astype(str)))
    return [s for s in SEX_ORDER if s in seen] + [s for s in seen if s not in SEX_ORDER]


def order_pyramid_rows(rows: pd.DataFrame) -> pd.DataFrame:
    """
    Sort by numeric lower bound of the age group, then by sex order, and make
    age_group / sex ordered categoricals. Rows whose age_lower is NaN go last,
    keeping their first-appearance order.
    """
    rows = rows.reset_index(drop=True).copy()
    rows["sex"] = rows["sex"].astype(str)
    sexes = sex_order(rows["sex"])

    first_seen = {g: i for i, g in enumerate(pd.unique(rows["age_group"]))}
    key = rows["age_lower"].fillna(np.inf)
    rows["_age_key"] = key
    rows["_first"] = rows["age_group"].map(first_seen)
    rows["_sex_rank"] = rows["sex"].map({s: i for i, s in enumerate(sexes)})
    rows = rows.sort_values(["_age_key", "_first", "_sex_rank"], kind="mergesort")

    age_levels = list(pd.unique(rows["age_group"]))
    rows["age_group"] = pd.Categorical(rows["age_group"], categories=age_levels, ordered=True)
    rows["sex"] = pd.Categorical(rows["sex"], categories=sexes, ordered=True)
    return rows.drop(columns=["_age_key", "_first", "_sex_rank"]).reset_index(drop=True)


def group_for_pyramid(
    records: pd.DataFrame,
    var_map: Optional[VarMap] = None,
    age_breakpoints: Sequence[float] = DEFAULT_AGE_BREAKPOINTS,
    reference_date: Optional[date] = None,
) -> pd.DataFrame:
    """
    Count line-list records per (age group, sex).

    Returns columns age_group, age_lower, sex, value, ordered by age_lower then
    sex (Male, Female, others). Only combinations present in the data appear.
    """
    records = require_frame(records)
    var_map = var_map or VarMap()
    bands = build_age_bands(age_breakpoints)
    require_sex(records, var_map.sex)

    ages = resolve_ages(records, var_map, reference_date)
    grouped = assign_age_groups(ages, bands)
    grouped["sex"] = records[var_map.sex].astype(str).to_numpy()

    counts = (
        grouped
        .groupby(["age_group", "age_lower", "sex"], sort=False)
        .size()
        .rename("value")
        .reset_index()
    )
    counts["value"] = counts["value"].astype(float)
    logger.debug("Grouped %d records into %d age-sex cells", len(records), len(counts))
    return order_pyramid_rows(counts[GROUP_COLUMNS])
