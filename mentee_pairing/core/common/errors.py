"""تعریف خطاهای دامنه برای هستهٔ تخصیص منتی."""
from __future__ import annotations

from dataclasses import dataclass

from .reasons import FailureCode


class DomainError(Exception):
    """پایهٔ تمام خطاهای دامنه‌ای."""


@dataclass(eq=True)
class ValidationError(DomainError):
    """ردیف ورودی با قرارداد اسکیما سازگار نیست.

    Attributes:
        message: توضیح خوانای خطا.
        key: شمارهٔ دانشجویی (index) در صورت وجود.
        row_number: شمارهٔ ردیف ورودی (۱-پایه).
        code: کد دلیل برای شمارش و گزارش.
    """

    message: str
    key: str | None = None
    row_number: int | None = None
    code: FailureCode = FailureCode.INVALID_FIELD

    def __str__(self) -> str:
        parts: list[str] = [f"{self.code.value}: {self.message}"]
        if self.key is not None:
            parts.append(f"key={self.key!r}")
        if self.row_number is not None:
            parts.append(f"row={self.row_number}")
        return " ".join(parts)


class InvalidBatchError(ValidationError):
    """ساختار کل دسته نامعتبر است (لیست نیست یا خالی است)."""


@dataclass(eq=True)
class ConflictError(DomainError):
    """Upsert یک قلم توسط ذخیره‌ساز رد شد."""

    message: str
    key: str | None = None

    def __str__(self) -> str:
        if self.key is None:
            return self.message
        return f"{self.message} (key={self.key!r})"


@dataclass(eq=True)
class NoEligibleAllocators(DomainError):
    """تخصیص لازم است اما هیچ استاد فعالی در دسترس نیست."""

    department: str | None = None

    def __str__(self) -> str:
        if self.department:
            return f"No active allocators found for department: {self.department}"
        return "No active allocators supplied"


__all__ = [
    "DomainError",
    "ValidationError",
    "InvalidBatchError",
    "ConflictError",
    "NoEligibleAllocators",
]
