"""انتخاب استخر استادان فعال یک دپارتمان (بدون I/O)."""

from __future__ import annotations

from typing import Iterable, List

from mentee_pairing.core.common.types import Allocator

__all__ = ["same_department", "select_active_allocators"]


def same_department(left: str | None, right: str | None) -> bool:
    """مقایسهٔ نام دپارتمان بدون حساسیت به حروف و فاصله‌های کناری.

    >>> same_department(" Computer Engineering", "computer engineering")
    True
    """

    if left is None or right is None:
        return False
    return left.strip().casefold() == right.strip().casefold()


def select_active_allocators(
    allocators: Iterable[Allocator], department: str | None
) -> List[Allocator]:
    """استادان فعال دپارتمان با حفظ ترتیب ورودی و حذف شناسه‌های تکراری.

    ترتیب خروجی همان ترتیب Directory است؛ موتور تخصیص به این ترتیب وابسته است.
    """

    seen: set[str] = set()
    pool: List[Allocator] = []
    for allocator in allocators:
        if not allocator.active or allocator.allocator_id in seen:
            continue
        if department is not None and not same_department(allocator.department, department):
            continue
        seen.add(allocator.allocator_id)
        pool.append(allocator)
    return pool
