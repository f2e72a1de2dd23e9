"""پیاده‌سازی درون‌حافظه‌ای مخزن‌ها برای آزمون و اجراهای بدون دیسک."""

from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime
from typing import Dict, Iterable, List

from mentee_pairing.core.common.errors import ConflictError
from mentee_pairing.core.common.types import (
    Allocator,
    AssignmentRecord,
    AssignmentStatus,
    StudentRecord,
)
from mentee_pairing.infra.local_database import utc_now


class InMemoryStudentStore:
    def __init__(self) -> None:
        self._rows: Dict[str, StudentRecord] = {}
        self._lock = threading.Lock()

    def upsert_student(self, record: StudentRecord, *, at: datetime | None = None) -> StudentRecord:
        stored = replace(record, updated_at=at or utc_now())
        with self._lock:
            self._rows[record.index_number] = stored
        return stored

    def get_student(self, index_number: str) -> StudentRecord | None:
        return self._rows.get(index_number)

    def __len__(self) -> int:
        return len(self._rows)


class InMemoryAssignmentStore:
    """ذخیرهٔ تخصیص؛ در صورت اتصال به StudentStore وجود دانشجو را بررسی می‌کند."""

    def __init__(self, students: InMemoryStudentStore | None = None) -> None:
        self._rows: Dict[str, AssignmentRecord] = {}
        self._students = students
        self._lock = threading.Lock()

    def upsert_assignment(
        self, student_index: str, allocator_id: str, *, at: datetime | None = None
    ) -> AssignmentRecord:
        if self._students is not None and self._students.get_student(student_index) is None:
            raise ConflictError("assignment references unknown student", key=student_index)
        stamp = at or utc_now()
        record = AssignmentRecord(
            student_index=student_index,
            allocator_id=allocator_id,
            status=AssignmentStatus.ACTIVE,
            assigned_at=stamp,
            updated_at=stamp,
        )
        with self._lock:
            self._rows[student_index] = record
        return record

    def get_assignment(self, student_index: str) -> AssignmentRecord | None:
        return self._rows.get(student_index)

    def active_for(self, allocator_id: str) -> List[AssignmentRecord]:
        return [
            record
            for record in self._rows.values()
            if record.allocator_id == allocator_id and record.status is AssignmentStatus.ACTIVE
        ]

    def __len__(self) -> int:
        return len(self._rows)


class InMemoryAllocatorDirectory:
    def __init__(self, allocators: Iterable[Allocator] = ()) -> None:
        self._allocators: List[Allocator] = list(allocators)

    def add(self, allocator: Allocator) -> None:
        self._allocators.append(allocator)

    def list_allocators(self, *, department: str | None = None) -> List[Allocator]:
        if department is None:
            return list(self._allocators)
        wanted = department.strip().casefold()
        return [
            allocator
            for allocator in self._allocators
            if allocator.department is not None
            and allocator.department.strip().casefold() == wanted
        ]


__all__ = ["InMemoryStudentStore", "InMemoryAssignmentStore", "InMemoryAllocatorDirectory"]
