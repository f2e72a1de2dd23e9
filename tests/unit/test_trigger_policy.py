from __future__ import annotations

import pytest

from mentee_pairing.core.allocation.trigger import (
    first_term_trigger,
    never_trigger,
    trigger_from_policy,
)
from mentee_pairing.core.common.types import BatchMeta
from mentee_pairing.core.policy_loader import parse_policy_dict


@pytest.mark.parametrize(
    ("meta", "expected"),
    [
        (BatchMeta(admission_year=1, semester=1, department="CE"), True),
        (BatchMeta(admission_year=1, semester=1), True),
        (BatchMeta(admission_year=1, semester=2, department="CE"), False),
        (BatchMeta(admission_year=2, semester=1, department="CE"), False),
        (BatchMeta(), False),
    ],
)
def test_reference_trigger(meta: BatchMeta, expected: bool) -> None:
    assert first_term_trigger()(meta) is expected


def test_trigger_from_policy_uses_configured_first_term() -> None:
    policy = parse_policy_dict(
        {
            "version": "1.0.0",
            "trigger": {"first_year": 2025, "first_semester": 1},
            "score_bounds": {"minimum": 0, "maximum": 100},
        }
    )
    trigger = trigger_from_policy(policy)
    assert trigger(BatchMeta(admission_year=2025, semester=1))
    assert not trigger(BatchMeta(admission_year=1, semester=1))


def test_never_trigger_is_a_valid_policy() -> None:
    assert never_trigger(BatchMeta(admission_year=1, semester=1)) is False
