"""ابزار استانداردسازی سرستون‌های فهرست دانشجویان و تبدیل DataFrame به ردیف خام."""

from __future__ import annotations

import math
from typing import Any, Dict, List, Mapping, Sequence

import pandas as pd

__all__ = [
    "resolve_header",
    "canonicalize_roster_headers",
    "frame_to_raw_rows",
]


def resolve_header(header: object, lookup: Mapping[str, str]) -> str | None:
    """نام کانونی یک سرستون یا ``None`` اگر ناشناخته باشد.

    >>> resolve_header(" INDEXNO ", {"indexno": "external_index"})
    'external_index'
    """

    key = " ".join(str(header).split()).lower()
    return lookup.get(key)


def canonicalize_roster_headers(
    frame: pd.DataFrame, lookup: Mapping[str, str]
) -> pd.DataFrame:
    """بازنام‌گذاری سرستون‌ها به نام‌های کانونی (بدون حساسیت به حروف).

    ستون‌های ناشناخته دست‌نخورده می‌مانند. اگر دو سرستون به یک نام کانونی
    برسند، نخستین ستون برنده است و بقیه کنار گذاشته می‌شوند.
    """

    renamed: Dict[str, str] = {}
    taken: set[str] = set()
    dropped: List[object] = []
    for column in frame.columns:
        canonical = resolve_header(column, lookup)
        if canonical is None:
            continue
        if canonical in taken:
            dropped.append(column)
            continue
        taken.add(canonical)
        renamed[column] = canonical
    result = frame.drop(columns=dropped) if dropped else frame.copy()
    return result.rename(columns=renamed)


def _cell(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    if value is pd.NA or value is pd.NaT:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    if hasattr(value, "item") and not isinstance(value, (str, bytes)):
        # اسکالرهای numpy به نوع بومی پایتون
        return value.item()
    return value


def frame_to_raw_rows(
    frame: pd.DataFrame, columns: Sequence[str] | None = None
) -> List[Dict[str, Any]]:
    """تبدیل DataFrame به فهرست dict با مقادیر خالی به‌صورت ``None``.

    >>> import pandas as pd
    >>> frame_to_raw_rows(pd.DataFrame({"score": [80.0, float("nan")]}))
    [{'score': 80.0}, {'score': None}]
    """

    selected = [col for col in (columns or frame.columns) if col in frame.columns]
    rows: List[Dict[str, Any]] = []
    for record in frame[selected].to_dict(orient="records"):
        rows.append({str(key): _cell(value) for key, value in record.items()})
    return rows
