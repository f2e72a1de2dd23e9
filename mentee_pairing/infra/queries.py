"""پرس‌وجوهای سمت خواندن: منتی‌های یک استاد و استاد فعلی هر دانشجو."""

from __future__ import annotations

from datetime import date
from typing import Dict, List, Sequence

import pandas as pd

from mentee_pairing.core.common.normalization import normalize_index
from mentee_pairing.core.common.types import MenteeView
from mentee_pairing.infra.local_database import LocalDatabase, from_iso

__all__ = [
    "CALENDAR_YEAR_FLOOR",
    "year_of_study",
    "mentees_of",
    "mentees_frame",
    "current_allocators",
]

# مقادیر کوچک‌تر از این عدد «سال تحصیلی» هستند نه سال میلادی ورود.
CALENDAR_YEAR_FLOOR = 1900


def year_of_study(admission_year: int | None, *, today: date | None = None) -> int:
    """سال تحصیلی جاری دانشجو (حداقل ۱).

    >>> year_of_study(2024, today=date(2026, 3, 1))
    3
    >>> year_of_study(2)
    2
    """

    if admission_year is None:
        return 1
    if admission_year >= CALENDAR_YEAR_FLOOR:
        current = (today or date.today()).year
        return max(1, current - admission_year + 1)
    return max(1, admission_year)


def mentees_of(
    db: LocalDatabase, allocator_id: str, *, today: date | None = None
) -> List[MenteeView]:
    """تخصیص‌های فعال یک استاد به ترتیب زمان تخصیص و شمارهٔ دانشجو."""

    views: List[MenteeView] = []
    for row in db.fetch_active_mentees(allocator_id):
        views.append(
            MenteeView(
                index_number=row["index_number"],
                given_name=row["given_name"],
                family_name=row["family_name"],
                score=row["score"],
                admission_year=row["admission_year"],
                year_of_study=year_of_study(row["admission_year"], today=today),
                assigned_at=from_iso(row["assigned_at"]),
            )
        )
    return views


def mentees_frame(views: Sequence[MenteeView]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "index_number": view.index_number,
                "given_name": view.given_name,
                "family_name": view.family_name,
                "score": view.score,
                "year_of_study": view.year_of_study,
                "assigned_at": view.assigned_at.isoformat().replace("+00:00", "Z"),
            }
            for view in views
        ],
        columns=[
            "index_number",
            "given_name",
            "family_name",
            "score",
            "year_of_study",
            "assigned_at",
        ],
    )


def current_allocators(db: LocalDatabase, index_numbers: Sequence[object]) -> Dict[str, str]:
    """نگاشت شمارهٔ دانشجو به نام کامل استاد، فقط برای دانشجویان دارای تخصیص فعال."""

    keys = [key for key in (normalize_index(value) for value in index_numbers) if key]
    return db.fetch_active_allocator_names(keys)
