"""Serialisation helpers (FastAPI-free).

Converts backend objects (dataclasses, pandas frames, numpy scalars, warnings)
into 100% JSON-serialisable structures for the API.
"""

from __future__ import annotations

from dataclasses import fields, is_dataclass
from typing import Any

import numpy as np
import pandas as pd


def _is_missing(value: Any) -> bool:
    if value is None or value is pd.NA:
        return True
    try:
        return bool(value != value)
    except Exception:
        return False


def df_to_records(df: pd.DataFrame, *, index_name: str | None = None) -> list[dict[str, Any]]:
    """Frame rows as dicts; <NA>/NaN become None, the index becomes a column."""

    if df is None:
        return []
    # IMPORTANT: cast to object so that None survives in numeric columns.
    safe = df.copy().astype(object)
    safe = safe.where(pd.notna(safe), None)
    if index_name is not None:
        safe = safe.reset_index(names=index_name)
    records = safe.to_dict(orient="records")
    return [{str(k): to_jsonable(v) for k, v in record.items()} for record in records]


def to_jsonable(obj: Any, *, tag_dataclasses: bool = False) -> Any:
    """Convert obj to JSON primitives (dict/list/str/int/float/bool/None)."""

    if _is_missing(obj):
        return None

    # numpy scalar
    if isinstance(obj, np.generic):
        return obj.item()

    if isinstance(obj, (str, int, bool, float)):
        return obj

    if isinstance(obj, Warning):
        return str(obj)

    if isinstance(obj, dict):
        return {str(k): to_jsonable(v, tag_dataclasses=tag_dataclasses) for k, v in obj.items()}
    if isinstance(obj, (list, tuple, set)):
        return [to_jsonable(v, tag_dataclasses=tag_dataclasses) for v in obj]

    if isinstance(obj, pd.DataFrame):
        return {
            "type": "dataframe",
            "shape": [int(obj.shape[0]), int(obj.shape[1])],
            "columns": [str(c) for c in obj.columns],
            "records": df_to_records(obj),
        }

    if is_dataclass(obj) and not isinstance(obj, type):
        out: dict[str, Any] = {"type": obj.__class__.__name__} if tag_dataclasses else {}
        for f in fields(obj):
            out[f.name] = to_jsonable(getattr(obj, f.name), tag_dataclasses=tag_dataclasses)
        return out

    # Fallback
    return str(obj)
