"""اعتبارسنجی صریح ردیف‌های خام فهرست دانشجویان با نتیجهٔ برچسب‌دار.

هر ردیف خام (Mapping) یا به :class:`RowAccepted` تبدیل می‌شود یا به
:class:`RowRejected`؛ هیچ ردیفی به‌صورت بی‌صدا حذف نمی‌شود. فقط ساختار نامعتبر
کل دسته (لیست نبودن یا خالی بودن) با :class:`InvalidBatchError` متوقف می‌شود.

مثال::

    >>> from mentee_pairing.core.common.types import BatchMeta
    >>> result = validate_roster_row({"external_index": 1234567.0, "raw_name": "A, B"},
    ...                              row_number=1, meta=BatchMeta(1, 1, "CE"))
    >>> result.row.external_index, result.row.department
    ('1234567', 'CE')
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, List, Mapping, Sequence, Union

from mentee_pairing.core.common.errors import InvalidBatchError
from mentee_pairing.core.common.normalization import normalize_index
from mentee_pairing.core.common.reasons import FailureCode, reason_message
from mentee_pairing.core.common.types import BatchMeta, RosterRow
from mentee_pairing.core.policy_loader import ScoreBounds

__all__ = [
    "RowAccepted",
    "RowRejected",
    "RowResult",
    "DEFAULT_SCORE_BOUNDS",
    "validate_roster_row",
    "validate_roster",
    "derive_batch_meta",
]

DEFAULT_SCORE_BOUNDS = ScoreBounds(minimum=0.0, maximum=100.0)


@dataclass(frozen=True, slots=True)
class RowAccepted:
    row: RosterRow


@dataclass(frozen=True, slots=True)
class RowRejected:
    row_number: int
    key: str | None
    code: FailureCode
    message: str


RowResult = Union[RowAccepted, RowRejected]


class _FieldError(Exception):
    def __init__(self, code: FailureCode, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and not value.strip()


def _parse_score(value: Any, bounds: ScoreBounds) -> float | None:
    if _is_blank(value):
        return None
    if isinstance(value, bool):
        raise _FieldError(FailureCode.INVALID_SCORE, f"Score {value!r} is not a number")
    try:
        score = float(str(value).strip()) if isinstance(value, str) else float(value)
    except (TypeError, ValueError) as exc:
        raise _FieldError(
            FailureCode.INVALID_SCORE, f"Score {value!r} is not a number"
        ) from exc
    if not math.isfinite(score) or not bounds.contains(score):
        raise _FieldError(
            FailureCode.INVALID_SCORE,
            f"Score {value!r} is outside [{bounds.minimum:g}, {bounds.maximum:g}]",
        )
    return score


def _parse_int(name: str, value: Any, fallback: int | None) -> int | None:
    if _is_blank(value):
        return fallback
    if isinstance(value, bool):
        raise _FieldError(FailureCode.INVALID_FIELD, f"{name} {value!r} is not an integer")
    try:
        number = float(str(value).strip()) if isinstance(value, str) else float(value)
    except (TypeError, ValueError) as exc:
        raise _FieldError(
            FailureCode.INVALID_FIELD, f"{name} {value!r} is not an integer"
        ) from exc
    if not math.isfinite(number) or not number.is_integer():
        raise _FieldError(FailureCode.INVALID_FIELD, f"{name} {value!r} is not an integer")
    return int(number)


def _parse_department(value: Any, fallback: str | None) -> str | None:
    if _is_blank(value):
        return fallback or None
    return str(value).strip()


def validate_roster_row(
    raw: Mapping[str, Any],
    *,
    row_number: int,
    meta: BatchMeta,
    score_bounds: ScoreBounds = DEFAULT_SCORE_BOUNDS,
) -> RowResult:
    """اعتبارسنجی یک ردیف خام؛ ``row_number`` یک‌پایه است."""

    if not isinstance(raw, Mapping):
        return RowRejected(
            row_number=row_number,
            key=None,
            code=FailureCode.INVALID_FIELD,
            message=f"Row {row_number} is not a mapping",
        )

    key = normalize_index(raw.get("external_index"))
    if not key:
        return RowRejected(
            row_number=row_number,
            key=None,
            code=FailureCode.MISSING_INDEX,
            message=reason_message(FailureCode.MISSING_INDEX),
        )

    try:
        score = _parse_score(raw.get("score"), score_bounds)
        admission_year = _parse_int("admission_year", raw.get("admission_year"), meta.admission_year)
        semester = _parse_int("semester", raw.get("semester"), meta.semester)
    except _FieldError as exc:
        return RowRejected(row_number=row_number, key=key, code=exc.code, message=exc.message)

    raw_name = raw.get("raw_name")
    return RowAccepted(
        RosterRow(
            external_index=key,
            raw_name="" if _is_blank(raw_name) else str(raw_name),
            score=score,
            admission_year=admission_year,
            semester=semester,
            department=_parse_department(raw.get("department"), meta.department),
            row_number=row_number,
        )
    )


def validate_roster(
    rows: Sequence[Mapping[str, Any]],
    meta: BatchMeta,
    *,
    score_bounds: ScoreBounds = DEFAULT_SCORE_BOUNDS,
) -> List[RowResult]:
    """اعتبارسنجی کل دسته با حفظ ترتیب ورودی.

    Raises:
        InvalidBatchError: اگر ``rows`` دنباله نباشد یا خالی باشد.
    """

    if isinstance(rows, (str, bytes, Mapping)) or not isinstance(rows, Sequence):
        raise InvalidBatchError("Batch rows must be a list of mappings")
    if not rows:
        raise InvalidBatchError("Batch contains no rows")
    return [
        validate_roster_row(raw, row_number=number, meta=meta, score_bounds=score_bounds)
        for number, raw in enumerate(rows, start=1)
    ]


def derive_batch_meta(rows: Sequence[Mapping[str, Any]]) -> BatchMeta:
    """متادیتای دسته از نخستین ردیف؛ مقادیر ناخوانا ``None`` می‌شوند.

    >>> derive_batch_meta([{"admission_year": "1", "semester": 1.0, "department": " CE "}])
    BatchMeta(admission_year=1, semester=1, department='CE')
    """

    first = rows[0] if rows and isinstance(rows[0], Mapping) else {}

    def _lenient_int(value: Any) -> int | None:
        try:
            return _parse_int("field", value, None)
        except _FieldError:
            return None

    return BatchMeta(
        admission_year=_lenient_int(first.get("admission_year")),
        semester=_lenient_int(first.get("semester")),
        department=_parse_department(first.get("department"), None),
    )
