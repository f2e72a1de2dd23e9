"""موتور تخصیص «رفت و برگشتی» (snake) دانشجویان به استادان راهنما.

الگوریتم:

1. دانشجویان به‌صورت پایدار بر اساس نمرهٔ نزولی مرتب می‌شوند (نمرهٔ غایب = صفر).
2. فهرست مرتب در تکه‌های M تایی (M = تعداد استادان) شکسته می‌شود.
3. گذرهای زوج به ترتیب ``0..M-1`` و گذرهای فرد به ترتیب ``M-1..0`` تخصیص
   می‌یابند؛ تکهٔ کوتاه آخر از ابتدای جهت جاری استفاده می‌کند.

تابع‌ها خالص و دترمینیستیک هستند.

مثال::

    >>> snake_order(3, 0), snake_order(3, 1)
    ([0, 1, 2], [2, 1, 0])
"""

from __future__ import annotations

from typing import Dict, List, Sequence

import pandas as pd

from mentee_pairing.core.common.errors import NoEligibleAllocators
from mentee_pairing.core.common.types import Allocator, Pairing, StudentRecord

__all__ = [
    "rank_students",
    "snake_order",
    "allocate_bidirectional",
    "pairings_to_frame",
    "load_by_allocator",
    "PAIRING_COLUMNS",
]

PAIRING_COLUMNS = [
    "index_number",
    "student_name",
    "score",
    "allocator_id",
    "allocator_name",
    "pass_index",
    "position",
]


def rank_students(students: Sequence[StudentRecord]) -> List[StudentRecord]:
    """مرتب‌سازی پایدار نزولی بر اساس نمره؛ تساوی‌ها ترتیب ورودی را نگه می‌دارند."""

    return sorted(students, key=lambda student: -student.ranking_score)


def snake_order(m: int, pass_index: int) -> List[int]:
    """ترتیب اندیس استادان در گذر ``pass_index``."""

    if m < 1:
        raise ValueError("m must be >= 1")
    forward = list(range(m))
    return forward if pass_index % 2 == 0 else forward[::-1]


def allocate_bidirectional(
    students: Sequence[StudentRecord],
    allocators: Sequence[Allocator],
    *,
    department: str | None = None,
) -> List[Pairing]:
    """تخصیص رفت و برگشتی؛ برای هر دانشجو دقیقاً یک جفت.

    Raises:
        NoEligibleAllocators: اگر فهرست استادان خالی باشد.
    """

    if not allocators:
        raise NoEligibleAllocators(department=department)
    if not students:
        return []

    m = len(allocators)
    ranked = rank_students(students)
    pairings: List[Pairing] = []
    for start in range(0, len(ranked), m):
        pass_index = start // m
        chunk = ranked[start : start + m]
        order = snake_order(m, pass_index)
        for position, student in enumerate(chunk):
            pairings.append(
                Pairing(
                    student=student,
                    allocator=allocators[order[position]],
                    pass_index=pass_index,
                    position=position,
                )
            )
    return pairings


def pairings_to_frame(pairings: Sequence[Pairing]) -> pd.DataFrame:
    """نمایش جدولی جفت‌ها برای خروجی Excel."""

    records = [
        {
            "index_number": pairing.student.index_number,
            "student_name": pairing.student.full_name,
            "score": pairing.student.score,
            "allocator_id": pairing.allocator.allocator_id,
            "allocator_name": pairing.allocator.full_name,
            "pass_index": pairing.pass_index,
            "position": pairing.position,
        }
        for pairing in pairings
    ]
    return pd.DataFrame.from_records(records, columns=PAIRING_COLUMNS)


def load_by_allocator(pairings: Sequence[Pairing]) -> pd.DataFrame:
    """خلاصهٔ تعداد و مجموع نمرهٔ دانشجویان هر استاد به ترتیب اولین ظهور."""

    summary: Dict[str, Dict[str, object]] = {}
    for pairing in pairings:
        allocator = pairing.allocator
        entry = summary.setdefault(
            allocator.allocator_id,
            {
                "allocator_id": allocator.allocator_id,
                "allocator_name": allocator.full_name,
                "mentee_count": 0,
                "score_total": 0.0,
            },
        )
        entry["mentee_count"] = int(entry["mentee_count"]) + 1
        entry["score_total"] = float(entry["score_total"]) + pairing.student.ranking_score
    return pd.DataFrame(
        list(summary.values()),
        columns=["allocator_id", "allocator_name", "mentee_count", "score_total"],
    )
