from __future__ import annotations

from collections import Counter

import pytest

hypothesis = pytest.importorskip("hypothesis")
from hypothesis import given, settings  # type: ignore  # noqa: E402
from hypothesis import strategies as st  # type: ignore  # noqa: E402

from mentee_pairing.core.allocation.engine import allocate_bidirectional  # noqa: E402
from mentee_pairing.core.common.normalization import parse_full_name  # noqa: E402
from tests.conftest import make_allocator, make_student  # noqa: E402

_scores = st.one_of(
    st.none(),
    st.floats(min_value=0, max_value=100, allow_nan=False, allow_infinity=False),
)


@settings(max_examples=60)
@given(st.lists(_scores, max_size=40), st.integers(min_value=1, max_value=7))
def test_every_student_paired_exactly_once(scores: list[float | None], allocator_count: int) -> None:
    students = [make_student(f"S{i}", score) for i, score in enumerate(scores)]
    pool = [make_allocator(f"L{i}") for i in range(allocator_count)]

    pairings = allocate_bidirectional(students, pool)

    assert len(pairings) == len(students)
    assert Counter(p.student.index_number for p in pairings) == Counter(
        s.index_number for s in students
    )
    assert {p.allocator.allocator_id for p in pairings} <= {a.allocator_id for a in pool}


@settings(max_examples=60)
@given(st.lists(_scores, min_size=1, max_size=40), st.integers(min_value=1, max_value=7))
def test_load_is_balanced_and_deterministic(scores: list[float | None], allocator_count: int) -> None:
    students = [make_student(f"S{i}", score) for i, score in enumerate(scores)]
    pool = [make_allocator(f"L{i}") for i in range(allocator_count)]

    first = allocate_bidirectional(students, pool)
    second = allocate_bidirectional(students, pool)

    assert [(p.student.index_number, p.allocator.allocator_id) for p in first] == [
        (p.student.index_number, p.allocator.allocator_id) for p in second
    ]
    load = Counter(p.allocator.allocator_id for p in first)
    counts = [load.get(a.allocator_id, 0) for a in pool]
    assert max(counts) - min(counts) <= 1


@settings(max_examples=60)
@given(
    st.text(alphabet=st.characters(blacklist_characters="()"), max_size=20),
    st.text(alphabet=st.characters(blacklist_characters="()"), min_size=1, max_size=10).filter(
        lambda marker: marker.strip() != ""
    ),
)
def test_parenthetical_marker_never_survives(name: str, marker: str) -> None:
    token = f"ZQX{marker.strip()}QXZ"
    parts = parse_full_name(f"{name} ({token})")
    for field in (parts.given, parts.middle, parts.family):
        assert token not in field
