# utils.py
# Helpers for config, robust CSV loading and input validation.

from __future__ import annotations
from pathlib import Path
from typing import Iterable, List
import yaml
import pandas as pd
import numpy as np


class ValidationError(ValueError):
    """Raised when a caller-supplied input fails a precondition."""


# ---------- Config ----------
def load_config(config_path: str | Path = "config.yaml") -> dict:
    p = Path(config_path).expanduser().resolve()
    if not p.exists():
        raise FileNotFoundError(f"config.yaml not found at: {p}")
    with open(p, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}

def resolve_path(root_dir: str | Path, rel_path: str) -> Path:
    root = Path(root_dir)
    parts = Path(rel_path).parts
    return (root.joinpath(*parts)).resolve()

# ---------- Robust CSV reading ----------
def read_csv_smart(path: Path) -> pd.DataFrame:
    """
    Try multiple encodings so CSVs saved from Excel/Windows load cleanly.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Data file not found: {path}")
    encs = ["utf-8-sig", "cp1252", "utf-16"]
    last = None
    for e in encs:
        try:
            return pd.read_csv(path, encoding=e)
        except UnicodeDecodeError as err:
            last = err
            continue
    raise ValidationError(f"Could not decode {path} with {encs}. Last: {last}")

def coerce_numeric(series: pd.Series) -> pd.Series:
    """Strip thousands separators and blanks, then convert to float (NaN on failure)."""
    if pd.api.types.is_numeric_dtype(series):
        return series.astype(float)
    s = (
        series.astype(str)
        .str.replace(",", "", regex=False)
        .str.strip()
        .replace({"": np.nan, "nan": np.nan, "None": np.nan})
    )
    return pd.to_numeric(s, errors="coerce")

# ---------- Validation ----------
def require_frame(df) -> pd.DataFrame:
    if df is None:
        raise ValidationError("A data frame argument is required")
    if not isinstance(df, pd.DataFrame):
        raise ValidationError("df is not a data frame object")
    if df.empty:
        raise ValidationError("df is empty")
    return df

def missing_columns(df: pd.DataFrame, cols: Iterable[str]) -> List[str]:
    return [c for c in cols if c not in df.columns]

def require_columns(df: pd.DataFrame, cols: Iterable[str], what: str = "df") -> None:
    miss = missing_columns(df, cols)
    if miss:
        raise ValidationError(f"[{what}] missing columns: {miss}. Found: {list(df.columns)}")
