# curation.py
"""
minimal helpers used by sim_runner.

"""
from __future__ import annotations

from pathlib import Path
from typing import Final

import pandas as pd
import pyarrow as pa
import pyarrow.parquet as pq

import validator

_EXPECTED_ORDER: Final = [
    "scenario_id", "test_label", "hypothesis", "policy",
    "rep", "t", "call_type", "n_dials",
]


def tidy_dataframe(df: pd.DataFrame) -> pd.DataFrame:
    """
    * Re-orders the key columns so parquet is predictable.
    * Sorts by scenario, replication, time.
    * Down-casts n_dials / call_type / rep to int64.
    """
    cols = [c for c in _EXPECTED_ORDER if c in df.columns] + \
           [c for c in df.columns if c not in _EXPECTED_ORDER]
    df = df[cols].copy()
    for c in ("rep", "call_type", "n_dials"):
        if c in df.columns:
            df[c] = df[c].astype("int64")
    keys = [c for c in ("scenario_id", "rep", "t", "call_type") if c in df.columns]
    if keys:
        df = df.sort_values(keys, kind="stable").reset_index(drop=True)
    return df


def read_trace(path: str | Path) -> pd.DataFrame:
    """Load an epoch trace from parquet or CSV and check it against TRACE_SCHEMA."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(path)
    if path.suffix.lower() in {".parquet", ".pq"}:
        df = pq.read_table(path).to_pandas()
    else:
        df = pd.read_csv(path)
    return validator.TRACE_SCHEMA.validate(df, lazy=True)


def write_parquet(df: pd.DataFrame, path: str | Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    pq.write_table(pa.Table.from_pandas(df, preserve_index=False), path)
    return path
