"""تعریف قراردادهای دادهٔ حوزهٔ تخصیص منتی (Core-only, بدون I/O).

این ماژول صرفاً تایپ‌ها را نگه می‌دارد و منطق ندارد؛ همهٔ ساختارها
فقط‌خواندنی هستند تا موتور تخصیص بتواند بدون نگرانی از تغییر اشتراکی روی
آن‌ها کار کند.

مثال:
    >>> from mentee_pairing.core.common.types import Allocator
    >>> Allocator("L-1", "Kofi", "Mensah", "Computer Engineering").full_name
    'Kofi Mensah'
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Tuple

from .reasons import FailureCode

__all__ = [
    "natural_key",
    "NameParts",
    "BatchMeta",
    "RosterRow",
    "StudentRecord",
    "Allocator",
    "Pairing",
    "AssignmentStatus",
    "AssignmentRecord",
    "ItemFailure",
    "MenteeView",
]

_NUM = re.compile(r"(\d+)")


def natural_key(s: str) -> Tuple[object, ...]:
    """کلید طبیعی برای sort پایدار شناسه‌ها (L-2 قبل از L-10).

    مثال::

        >>> natural_key("L-2") < natural_key("L-10")
        True
    """

    text = str(s or "").strip()
    if not text:
        return ("",)

    parts: list[object] = []
    for token in _NUM.split(text):
        if not token:
            continue
        if token.isdecimal():
            if not parts:
                parts.append("")
            parts.append(int(token))
        else:
            parts.append(token.lower())
    return tuple(parts) if parts else ("",)


@dataclass(frozen=True, slots=True)
class NameParts:
    """اجزای ساخت‌یافتهٔ نام خام."""

    given: str
    middle: str
    family: str


@dataclass(frozen=True, slots=True)
class BatchMeta:
    """متادیتای مشترک یک بارگذاری (سال ورود، نیم‌سال، دپارتمان)."""

    admission_year: int | None = None
    semester: int | None = None
    department: str | None = None


@dataclass(frozen=True, slots=True)
class RosterRow:
    """ردیف معتبرشدهٔ فهرست دانشجویان پس از گذر از اسکیما."""

    external_index: str
    raw_name: str
    score: float | None
    admission_year: int | None
    semester: int | None
    department: str | None
    row_number: int


@dataclass(frozen=True, slots=True)
class StudentRecord:
    """موجودیت دانشجو؛ کلید ``index_number`` در بارگذاری‌های تکراری پایدار است."""

    index_number: str
    given_name: str
    family_name: str
    score: float | None
    admission_year: int | None
    department: str | None = None
    updated_at: datetime | None = None

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.given_name, self.family_name) if part)

    @property
    def ranking_score(self) -> float:
        """نمرهٔ مورد استفاده در رتبه‌بندی؛ نمرهٔ غایب برابر صفر است."""

        return float(self.score) if self.score is not None else 0.0


@dataclass(frozen=True, slots=True)
class Allocator:
    """استاد راهنما (تخصیص‌دهنده) که از Directory بیرونی خوانده می‌شود."""

    allocator_id: str
    given_name: str
    family_name: str
    department: str | None
    active: bool = True
    email: str | None = None

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.given_name, self.family_name) if part)


@dataclass(frozen=True, slots=True)
class Pairing:
    """یک جفت دانشجو/استاد به همراه شمارهٔ گذر و جایگاه آن در گذر."""

    student: StudentRecord
    allocator: Allocator
    pass_index: int
    position: int


class AssignmentStatus(StrEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"


@dataclass(frozen=True, slots=True)
class AssignmentRecord:
    """ردیف تخصیص ذخیره‌شده؛ برای هر دانشجو حداکثر یک ردیف فعال وجود دارد."""

    student_index: str
    allocator_id: str
    status: AssignmentStatus
    assigned_at: datetime
    updated_at: datetime


@dataclass(frozen=True, slots=True)
class ItemFailure:
    """شکست یک قلم (ردیف یا جفت) که شمرده و گزارش می‌شود."""

    key: str | None
    row_number: int | None
    code: FailureCode
    message: str


@dataclass(frozen=True, slots=True)
class MenteeView:
    """نمای خواندنی منتی برای پرس‌وجوی «منتی‌های یک استاد»."""

    index_number: str
    given_name: str
    family_name: str
    score: float | None
    admission_year: int | None
    year_of_study: int
    assigned_at: datetime
