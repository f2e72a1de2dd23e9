from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Iterator, List

import pytest

from mentee_pairing.core.common.types import Allocator, StudentRecord
from mentee_pairing.infra.local_database import LocalDatabase
from mentee_pairing.infra.memory_store import (
    InMemoryAllocatorDirectory,
    InMemoryAssignmentStore,
    InMemoryStudentStore,
)

REPO_ROOT = Path(__file__).resolve().parents[1]
DEPARTMENT = "Computer Engineering"


def make_student(index: str, score: float | None, *, admission_year: int | None = 1) -> StudentRecord:
    """ساخت سادهٔ دانشجو برای آزمون‌های موتور.

    مثال:
        >>> make_student("S1", 90.0).ranking_score
        90.0
    """

    return StudentRecord(
        index_number=index,
        given_name=f"Given{index}",
        family_name=f"Family{index}",
        score=score,
        admission_year=admission_year,
        department=DEPARTMENT,
    )


def make_allocator(
    allocator_id: str,
    *,
    department: str | None = DEPARTMENT,
    active: bool = True,
    email: str | None = None,
) -> Allocator:
    return Allocator(
        allocator_id=allocator_id,
        given_name=f"Dr{allocator_id}",
        family_name="Mensah",
        department=department,
        active=active,
        email=email,
    )


def roster_row(index: object, name: str = "MENSAH, Kofi Ato", score: object = 70.0) -> dict:
    return {
        "external_index": index,
        "raw_name": name,
        "score": score,
        "admission_year": 1,
        "semester": 1,
        "department": DEPARTMENT,
    }


@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
    """ساعت قطعی که در هر فراخوانی یک ثانیه جلو می‌رود."""

    state = {"now": datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)}

    def _clock() -> datetime:
        current = state["now"]
        state["now"] = current + timedelta(seconds=1)
        return current

    return _clock


@pytest.fixture
def allocators() -> List[Allocator]:
    return [make_allocator("A"), make_allocator("B"), make_allocator("C")]


@pytest.fixture
def student_store() -> InMemoryStudentStore:
    return InMemoryStudentStore()


@pytest.fixture
def assignment_store(student_store: InMemoryStudentStore) -> InMemoryAssignmentStore:
    return InMemoryAssignmentStore(student_store)


@pytest.fixture
def directory(allocators: List[Allocator]) -> InMemoryAllocatorDirectory:
    return InMemoryAllocatorDirectory(allocators)


@pytest.fixture
def local_db(tmp_path: Path) -> Iterator[LocalDatabase]:
    db = LocalDatabase(tmp_path / "mentee_pairing.sqlite")
    db.initialize()
    yield db
