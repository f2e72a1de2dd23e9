from __future__ import annotations

from mentee_pairing.infra.local_database import LocalDatabase
from mentee_pairing.infra.memory_store import (
    InMemoryAllocatorDirectory,
    InMemoryAssignmentStore,
    InMemoryStudentStore,
)
from mentee_pairing.infra.repository_base import (
    AllocatorDirectory,
    AssignmentStore,
    SQLiteAllocatorDirectory,
    SQLiteAssignmentStore,
    SQLiteStudentStore,
    StudentStore,
)
from tests.conftest import make_allocator, make_student


def test_store_implementations_satisfy_protocols(local_db: LocalDatabase) -> None:
    assert isinstance(SQLiteStudentStore(local_db), StudentStore)
    assert isinstance(SQLiteAssignmentStore(local_db), AssignmentStore)
    assert isinstance(SQLiteAllocatorDirectory(local_db), AllocatorDirectory)
    assert isinstance(InMemoryStudentStore(), StudentStore)
    assert isinstance(InMemoryAssignmentStore(), AssignmentStore)
    assert isinstance(InMemoryAllocatorDirectory(), AllocatorDirectory)


def test_sqlite_adapters_delegate_to_database(local_db: LocalDatabase) -> None:
    students = SQLiteStudentStore(local_db)
    assignments = SQLiteAssignmentStore(local_db)
    directory = SQLiteAllocatorDirectory(local_db)

    local_db.upsert_allocator(make_allocator("A"))
    students.upsert_student(make_student("1001", 80.0))
    assignments.upsert_assignment("1001", "A")

    assert students.get_student("1001").score == 80.0
    assert assignments.get_assignment("1001").allocator_id == "A"
    assert [item.allocator_id for item in directory.list_allocators()] == ["A"]


def test_in_memory_directory_filters_department_case_insensitively() -> None:
    directory = InMemoryAllocatorDirectory([make_allocator("A"), make_allocator("B", department="Physics")])
    directory.add(make_allocator("C", department=None))
    assert [a.allocator_id for a in directory.list_allocators(department="COMPUTER engineering")] == ["A"]
    assert len(directory.list_allocators()) == 3
