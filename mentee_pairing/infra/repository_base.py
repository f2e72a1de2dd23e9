"""قراردادهای مخزن (Entity Store و Directory) و پیاده‌سازی SQLite آن‌ها.

Ingestor، Persister و Coordinator فقط به این Protocolها وابسته‌اند تا بتوان
ذخیره‌ساز درون‌حافظه‌ای (آزمون) یا SQLite (CLI) را تزریق کرد.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Protocol, runtime_checkable

from mentee_pairing.core.common.types import Allocator, AssignmentRecord, StudentRecord
from mentee_pairing.infra.local_database import LocalDatabase


@runtime_checkable
class StudentStore(Protocol):
    """قرارداد ذخیرهٔ دانشجو با کلید شمارهٔ دانشجویی.

    تعارض داده با ``ConflictError`` و خرابی ذخیره‌ساز با ``InfraError`` گزارش
    می‌شود. Ingestor هر استثنای دیگر را هم شکست همان ردیف (``STORE_ERROR``)
    می‌شمارد و ادامه می‌دهد.
    """

    def upsert_student(self, record: StudentRecord, *, at: datetime | None = None) -> StudentRecord:
        """درج یا به‌روزرسانی همهٔ فیلدهای قابل تغییر به‌جز کلید."""

    def get_student(self, index_number: str) -> StudentRecord | None:
        """بازیابی دانشجو یا ``None``."""


@runtime_checkable
class AssignmentStore(Protocol):
    """قرارداد ذخیرهٔ تخصیص با کلید شمارهٔ دانشجو.

    قرارداد خطا مثل :class:`StudentStore` است؛ Persister هر استثنای دیگر را
    شکست همان جفت (``STORE_ERROR``) می‌شمارد.
    """

    def upsert_assignment(
        self, student_index: str, allocator_id: str, *, at: datetime | None = None
    ) -> AssignmentRecord:
        """ثبت تخصیص فعال و جایگزینی تخصیص قبلی همان دانشجو."""

    def get_assignment(self, student_index: str) -> AssignmentRecord | None:
        """بازیابی تخصیص جاری یا ``None``."""


@runtime_checkable
class AllocatorDirectory(Protocol):
    """منبع فقط‌خواندنی استادان برای هستهٔ تخصیص."""

    def list_allocators(self, *, department: str | None = None) -> List[Allocator]:
        """فهرست استادان با ترتیب پایدار؛ فیلتر فعال بودن با مصرف‌کننده است."""


class SQLiteStudentStore:
    def __init__(self, db: LocalDatabase) -> None:
        self._db = db

    def upsert_student(self, record: StudentRecord, *, at: datetime | None = None) -> StudentRecord:
        return self._db.upsert_student(record, at=at)

    def get_student(self, index_number: str) -> StudentRecord | None:
        return self._db.get_student(index_number)


class SQLiteAssignmentStore:
    def __init__(self, db: LocalDatabase) -> None:
        self._db = db

    def upsert_assignment(
        self, student_index: str, allocator_id: str, *, at: datetime | None = None
    ) -> AssignmentRecord:
        return self._db.upsert_assignment(student_index, allocator_id, at=at)

    def get_assignment(self, student_index: str) -> AssignmentRecord | None:
        return self._db.get_assignment(student_index)


class SQLiteAllocatorDirectory:
    def __init__(self, db: LocalDatabase) -> None:
        self._db = db

    def list_allocators(self, *, department: str | None = None) -> List[Allocator]:
        return self._db.list_allocators(department=department)


__all__ = [
    "StudentStore",
    "AssignmentStore",
    "AllocatorDirectory",
    "SQLiteStudentStore",
    "SQLiteAssignmentStore",
    "SQLiteAllocatorDirectory",
]
