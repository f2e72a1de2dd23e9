from __future__ import annotations

import pytest

from mentee_pairing.core.allocation.engine import (
    PAIRING_COLUMNS,
    allocate_bidirectional,
    load_by_allocator,
    pairings_to_frame,
    rank_students,
    snake_order,
)
from mentee_pairing.core.allocation.mentor_pool import select_active_allocators
from mentee_pairing.core.common.errors import NoEligibleAllocators
from tests.conftest import make_allocator, make_student


def _scores_to_allocators(pairings) -> list[tuple[float | None, str]]:
    return [(p.student.score, p.allocator.allocator_id) for p in pairings]


def test_snake_fixture_six_students_three_allocators(allocators) -> None:
    students = [make_student(f"S{i}", score) for i, score in enumerate([90, 85, 80, 75, 70, 65])]
    pairings = allocate_bidirectional(students, allocators)
    assert _scores_to_allocators(pairings) == [
        (90, "A"),
        (85, "B"),
        (80, "C"),
        (75, "C"),
        (70, "B"),
        (65, "A"),
    ]
    assert [p.pass_index for p in pairings] == [0, 0, 0, 1, 1, 1]
    assert [p.position for p in pairings] == [0, 1, 2, 0, 1, 2]


def test_unsorted_input_is_ranked_first(allocators) -> None:
    students = [make_student(f"S{i}", score) for i, score in enumerate([65, 90, 75, 85, 70, 80])]
    pairings = allocate_bidirectional(students, allocators)
    assert [p.student.score for p in pairings] == [90, 85, 80, 75, 70, 65]


def test_short_final_chunk_uses_leading_positions_of_direction(allocators) -> None:
    students = [make_student(f"S{i}", 100 - i) for i in range(5)]
    pairings = allocate_bidirectional(students, allocators)
    assert [p.allocator.allocator_id for p in pairings] == ["A", "B", "C", "C", "B"]

    students = [make_student(f"S{i}", 100 - i) for i in range(7)]
    pairings = allocate_bidirectional(students, allocators)
    assert [p.allocator.allocator_id for p in pairings] == ["A", "B", "C", "C", "B", "A", "A"]


def test_ties_keep_input_order(allocators) -> None:
    students = [make_student("first", 80), make_student("second", 80), make_student("third", 80)]
    pairings = allocate_bidirectional(students, allocators)
    assert [p.student.index_number for p in pairings] == ["first", "second", "third"]


def test_absent_score_ranks_as_zero() -> None:
    ranked = rank_students([make_student("none", None), make_student("neg", 0.0), make_student("top", 10.0)])
    assert [s.index_number for s in ranked] == ["top", "none", "neg"]


def test_empty_allocators_raise_no_eligible() -> None:
    with pytest.raises(NoEligibleAllocators) as excinfo:
        allocate_bidirectional([make_student("S1", 50)], [], department="Physics")
    assert excinfo.value.department == "Physics"
    assert "Physics" in str(excinfo.value)


def test_empty_allocators_raise_even_without_students() -> None:
    with pytest.raises(NoEligibleAllocators):
        allocate_bidirectional([], [])


def test_empty_students_return_empty_list(allocators) -> None:
    assert allocate_bidirectional([], allocators) == []


def test_single_allocator_receives_everyone() -> None:
    solo = [make_allocator("ONLY")]
    pairings = allocate_bidirectional([make_student(f"S{i}", i) for i in range(4)], solo)
    assert {p.allocator.allocator_id for p in pairings} == {"ONLY"}
    assert [p.pass_index for p in pairings] == [0, 1, 2, 3]


def test_snake_order_validates_m() -> None:
    assert snake_order(1, 7) == [0]
    with pytest.raises(ValueError):
        snake_order(0, 0)


def test_pairings_to_frame_and_load_summary(allocators) -> None:
    students = [make_student(f"S{i}", score) for i, score in enumerate([90, 85, 80, 75])]
    pairings = allocate_bidirectional(students, allocators)

    frame = pairings_to_frame(pairings)
    assert list(frame.columns) == PAIRING_COLUMNS
    assert frame["allocator_id"].tolist() == ["A", "B", "C", "C"]
    assert frame.loc[0, "student_name"] == "GivenS0 FamilyS0"

    load = load_by_allocator(pairings)
    assert load["allocator_id"].tolist() == ["A", "B", "C"]
    assert load["mentee_count"].tolist() == [1, 1, 2]
    assert load.loc[2, "score_total"] == pytest.approx(155.0)


def test_pairings_to_frame_empty_has_columns() -> None:
    assert list(pairings_to_frame([]).columns) == PAIRING_COLUMNS


def test_select_active_allocators_filters_and_deduplicates() -> None:
    pool = select_active_allocators(
        [
            make_allocator("B"),
            make_allocator("A", active=False),
            make_allocator("C", department="physics"),
            make_allocator("B"),
            make_allocator("D", department=" computer engineering "),
        ],
        "Computer Engineering",
    )
    assert [a.allocator_id for a in pool] == ["B", "D"]
