"""مدل خطای لایهٔ Infra برای ذخیره‌سازی و ورودی/خروجی."""
from __future__ import annotations

from dataclasses import dataclass


class InfraError(RuntimeError):
    """پایهٔ همهٔ خطاهای لایهٔ زیرساخت."""


@dataclass(eq=True)
class SchemaVersionMismatchError(InfraError):
    """عدم تطابق نسخهٔ Schema پایگاه داده با نسخهٔ مورد انتظار."""

    expected_version: int
    actual_version: int
    message: str

    def __str__(self) -> str:
        return f"{self.message} (expected={self.expected_version}, actual={self.actual_version})"


@dataclass(eq=True)
class DatabaseOperationError(InfraError):
    """خطای کلی عملیات SQLite با پیام خوانا."""

    message: str

    def __str__(self) -> str:
        return self.message


@dataclass(eq=True)
class RosterFileError(InfraError):
    """فایل فهرست دانشجویان خوانا نیست یا قالب آن پشتیبانی نمی‌شود."""

    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.message}: {self.path}"


__all__ = [
    "InfraError",
    "SchemaVersionMismatchError",
    "DatabaseOperationError",
    "RosterFileError",
]
