"""سیستم مرکزی کد/متن دلایل شکست اقلام دسته (Core-only).

هر ردیف ردشده، هر جفت ثبت‌نشده و هر بار ردشدن مرحلهٔ تخصیص با یکی از
کدهای :class:`FailureCode` گزارش می‌شود تا شمارنده‌ها و پیام‌ها در همهٔ
لایه‌ها یکسان بمانند.

مثال::

    >>> build_reason(FailureCode.MISSING_INDEX).message
    'Row has no student index number.'
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Mapping

__all__ = ["FailureCode", "LocalizedReason", "build_reason", "reason_message"]


class FailureCode(StrEnum):
    """کدهای یکتای شکست در سطح قلم یا مرحله."""

    MISSING_INDEX = "MISSING_INDEX"
    INVALID_SCORE = "INVALID_SCORE"
    INVALID_FIELD = "INVALID_FIELD"
    STORE_CONFLICT = "STORE_CONFLICT"
    STORE_ERROR = "STORE_ERROR"
    TRIGGER_NOT_MET = "TRIGGER_NOT_MET"
    MISSING_DEPARTMENT = "MISSING_DEPARTMENT"
    NO_ELIGIBLE_ALLOCATORS = "NO_ELIGIBLE_ALLOCATORS"


@dataclass(frozen=True, slots=True)
class LocalizedReason:
    """متن خوانای دلیل برای گزارش به کاربر."""

    code: FailureCode
    message: str


_REASON_MESSAGES: Mapping[FailureCode, str] = {
    FailureCode.MISSING_INDEX: "Row has no student index number.",
    FailureCode.INVALID_SCORE: "Score is not a number within the accepted range.",
    FailureCode.INVALID_FIELD: "A field could not be parsed.",
    FailureCode.STORE_CONFLICT: "The store rejected the upsert.",
    FailureCode.STORE_ERROR: "The store failed while writing the record.",
    FailureCode.TRIGGER_NOT_MET: "Batch metadata does not call for allocation.",
    FailureCode.MISSING_DEPARTMENT: "Allocation needs a department but the batch has none.",
    FailureCode.NO_ELIGIBLE_ALLOCATORS: "No active allocators exist for the department.",
}


def reason_message(code: FailureCode) -> str:
    """برگرداندن متن ذخیره‌شده برای یک کد دلیل."""

    try:
        return _REASON_MESSAGES[code]
    except KeyError as exc:  # pragma: no cover - نگهبان نسخه‌های آینده
        raise ValueError(f"Failure code '{code}' is not defined") from exc


def build_reason(code: FailureCode) -> LocalizedReason:
    """ساخت شیء :class:`LocalizedReason` با پیام پایدار."""

    return LocalizedReason(code=code, message=reason_message(code))
