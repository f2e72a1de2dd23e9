from __future__ import annotations

from mentee_pairing.core.common.errors import (
    ConflictError,
    DomainError,
    InvalidBatchError,
    NoEligibleAllocators,
    ValidationError,
)
from mentee_pairing.core.common.reasons import FailureCode, build_reason, reason_message


def test_every_failure_code_has_message() -> None:
    for code in FailureCode:
        reason = build_reason(code)
        assert reason.code is code
        assert reason.message == reason_message(code)
        assert reason.message


def test_error_hierarchy() -> None:
    assert issubclass(ValidationError, DomainError)
    assert issubclass(InvalidBatchError, ValidationError)
    assert issubclass(ConflictError, DomainError)
    assert issubclass(NoEligibleAllocators, DomainError)


def test_validation_error_text_carries_code_key_and_row() -> None:
    error = ValidationError("bad score", key="S1", row_number=4, code=FailureCode.INVALID_SCORE)
    assert str(error) == "INVALID_SCORE: bad score key='S1' row=4"


def test_conflict_and_no_eligible_messages() -> None:
    assert str(ConflictError("rejected", key="S9")) == "rejected (key='S9')"
    assert str(NoEligibleAllocators()) == "No active allocators supplied"
    assert str(NoEligibleAllocators("Physics")) == "No active allocators found for department: Physics"
