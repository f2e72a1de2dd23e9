"""ورودی/خروجی فایل‌های فهرست دانشجویان (Excel/CSV) و خروجی اتمیک Excel.

این ماژول تنها محل خواندن و نوشتن فایل‌های جدولی است؛ Core فقط DataFrame یا
ردیف‌های dict دریافت می‌کند.
"""

from __future__ import annotations

import contextlib
import os
import re
import tempfile
import zipfile
from os import PathLike
from pathlib import Path
from typing import Any, Dict, Iterator, List

import pandas as pd

from mentee_pairing.core.common.columns import canonicalize_roster_headers, frame_to_raw_rows
from mentee_pairing.core.policy_loader import ROSTER_FIELDS, PolicyConfig, default_policy
from mentee_pairing.infra.errors import RosterFileError

__all__ = [
    "EXCEL_ENGINE",
    "EXCEL_SUFFIXES",
    "read_roster_file",
    "load_roster_rows",
    "write_xlsx_atomic",
]

EXCEL_ENGINE = "openpyxl"
EXCEL_SUFFIXES = frozenset({".xlsx", ".xlsm"})
CSV_SUFFIXES = frozenset({".csv", ".txt"})

_INVALID_SHEET_CHARS = re.compile(r"[\\/*?:\[\]]")


def _safe_sheet_name(name: str, taken: set[str]) -> str:
    """اصلاح و یکتا‌سازی نام شیت مطابق محدودیت‌های Excel (حداکثر ۳۱ نویسه)."""

    base = _INVALID_SHEET_CHARS.sub(" ", (name or "Sheet").strip()) or "Sheet"
    base = base[:31]
    candidate = base
    index = 2
    while candidate in taken:
        suffix = f" ({index})"
        candidate = (base[: max(0, 31 - len(suffix))] + suffix).rstrip()
        index += 1
    taken.add(candidate)
    return candidate


@contextlib.contextmanager
def _temporary_file_path(*, suffix: str = "", directory: Path | str | None = None) -> Iterator[Path]:
    """مسیر فایل موقتی که در پایان (در صورت باقی ماندن) حذف می‌شود."""

    fd, name = tempfile.mkstemp(suffix=suffix, dir=directory)
    os.close(fd)
    path = Path(name)
    try:
        yield path
    finally:
        path.unlink(missing_ok=True)


def read_roster_file(path: Path | str | PathLike[str]) -> pd.DataFrame:
    """خواندن شیت اول Excel یا کل فایل CSV به‌صورت DataFrame با dtype شیء."""

    source = Path(path)
    if not source.exists():
        raise FileNotFoundError(f"فایل یافت نشد: {source}")
    suffix = source.suffix.lower()
    try:
        if suffix in EXCEL_SUFFIXES:
            with pd.ExcelFile(source, engine=EXCEL_ENGINE) as workbook:
                if not workbook.sheet_names:
                    raise RosterFileError(str(source), "هیچ شیتی در فایل یافت نشد")
                return workbook.parse(workbook.sheet_names[0], dtype=object)
        if suffix in CSV_SUFFIXES:
            return pd.read_csv(source, dtype=str, keep_default_na=True, skipinitialspace=True)
    except RosterFileError:
        raise
    except (ValueError, OSError, zipfile.BadZipFile) as exc:
        raise RosterFileError(str(source), f"خطا در خواندن فایل ({exc})") from exc
    raise RosterFileError(str(source), f"قالب فایل «{suffix or '?'}» پشتیبانی نمی‌شود")


def load_roster_rows(
    path: Path | str | PathLike[str], policy: PolicyConfig | None = None
) -> List[Dict[str, Any]]:
    """خواندن فایل فهرست و تبدیل آن به ردیف‌های خام با سرستون‌های کانونی."""

    active_policy = policy or default_policy()
    frame = canonicalize_roster_headers(read_roster_file(path), active_policy.alias_lookup())
    if "external_index" not in frame.columns:
        raise RosterFileError(str(path), "ستون شمارهٔ دانشجویی (INDEXNO) در فایل یافت نشد")
    frame = frame.dropna(how="all")
    return frame_to_raw_rows(frame, columns=ROSTER_FIELDS)


def write_xlsx_atomic(
    data_dict: Dict[str, pd.DataFrame],
    filepath: Path | str | PathLike[str],
) -> Path:
    """نوشتن اتمیک Excel: ابتدا فایل موقت و سپس ``os.replace`` روی مقصد."""

    if not data_dict:
        raise ValueError("at least one sheet is required")
    target_path = Path(filepath)
    target_path.parent.mkdir(parents=True, exist_ok=True)
    taken: set[str] = set()

    with _temporary_file_path(suffix=".xlsx", directory=target_path.parent) as tmp_path:
        with pd.ExcelWriter(tmp_path, engine=EXCEL_ENGINE) as writer:
            for sheet_name, df in data_dict.items():
                safe_name = _safe_sheet_name(str(sheet_name), taken)
                df.to_excel(writer, sheet_name=safe_name, index=False)
        os.replace(tmp_path, target_path)
    return target_path
