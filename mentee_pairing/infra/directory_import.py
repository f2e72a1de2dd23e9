"""ورود فهرست استادان از CSV (name, email, department, status) به Directory."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from os import PathLike
from pathlib import Path
from typing import Callable, List, Tuple

import pandas as pd

from mentee_pairing.core.common.errors import ConflictError
from mentee_pairing.core.common.types import Allocator
from mentee_pairing.infra.errors import RosterFileError
from mentee_pairing.infra.local_database import LocalDatabase

logger = logging.getLogger(__name__)

__all__ = ["DirectoryImportResult", "parse_allocator_frame", "import_allocators_csv"]

_INACTIVE_VALUES = frozenset({"inactive", "false", "0", "no", "disabled"})
_REQUIRED_COLUMNS = ("name", "email")


@dataclass(frozen=True)
class DirectoryImportResult:
    imported: Tuple[Allocator, ...]
    skipped: int
    failed: int = 0


def _text(value: object) -> str:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return ""
    return str(value).strip()


def parse_allocator_frame(frame: pd.DataFrame) -> Tuple[List[Tuple[str, str, str, str | None, bool]], int]:
    """استخراج ``(email, given, family, department, active)`` از DataFrame.

    ردیف‌های بدون نام یا ایمیل کنار گذاشته و شمرده می‌شوند.
    """

    columns = {str(column).strip().lower(): column for column in frame.columns}
    missing = [name for name in _REQUIRED_COLUMNS if name not in columns]
    if missing:
        raise ValueError(f"Allocator CSV is missing columns: {missing}")

    entries: List[Tuple[str, str, str, str | None, bool]] = []
    skipped = 0
    for record in frame.to_dict(orient="records"):
        name = _text(record.get(columns["name"]))
        email = _text(record.get(columns["email"])).lower()
        tokens = name.split()
        if not tokens or not email:
            skipped += 1
            continue
        department = _text(record.get(columns["department"])) if "department" in columns else ""
        status = _text(record.get(columns["status"])).lower() if "status" in columns else ""
        entries.append(
            (
                email,
                tokens[0],
                " ".join(tokens[1:]),
                department or None,
                status not in _INACTIVE_VALUES,
            )
        )
    return entries, skipped


def import_allocators_csv(
    db: LocalDatabase,
    path: Path | str | PathLike[str],
    *,
    id_factory: Callable[[], str] = lambda: uuid.uuid4().hex,
) -> DirectoryImportResult:
    """upsert استادان CSV؛ برای ایمیل موجود شناسهٔ قبلی حفظ می‌شود."""

    source = Path(path)
    if not source.exists():
        raise FileNotFoundError(f"فایل یافت نشد: {source}")
    try:
        frame = pd.read_csv(source, dtype=str, skipinitialspace=True)
    except (ValueError, OSError) as exc:
        raise RosterFileError(str(source), f"خطا در خواندن فایل ({exc})") from exc

    entries, skipped = parse_allocator_frame(frame)
    db.initialize()
    imported: List[Allocator] = []
    failed = 0
    for email, given, family, department, active in entries:
        existing = db.find_allocator_by_email(email)
        allocator = Allocator(
            allocator_id=existing.allocator_id if existing else id_factory(),
            given_name=given,
            family_name=family,
            department=department,
            active=active,
            email=email,
        )
        try:
            imported.append(db.upsert_allocator(allocator))
        except ConflictError as exc:
            failed += 1
            logger.warning("Allocator %s rejected by store: %s", email, exc)

    logger.info(
        "Imported allocators from %s: %d imported, %d skipped, %d failed",
        source,
        len(imported),
        skipped,
        failed,
    )
    return DirectoryImportResult(imported=tuple(imported), skipped=skipped, failed=failed)
