"""سیاست تصمیم «آیا این بارگذاری تخصیص لازم دارد؟».

سیاست یک تابع قابل‌تعویض ``BatchMeta -> bool`` است تا Coordinator بدون دانستن
جزئیات شرط، آن را فراخوانی کند.
"""

from __future__ import annotations

from typing import Callable

from mentee_pairing.core.common.types import BatchMeta
from mentee_pairing.core.policy_loader import PolicyConfig

__all__ = ["TriggerPolicy", "first_term_trigger", "trigger_from_policy", "never_trigger"]

TriggerPolicy = Callable[[BatchMeta], bool]


def first_term_trigger(first_year: int = 1, first_semester: int = 1) -> TriggerPolicy:
    """شرط مرجع: سال ورود برابر سال اول و نیم‌سال برابر نیم‌سال اول.

    >>> trigger = first_term_trigger()
    >>> trigger(BatchMeta(admission_year=1, semester=1)), trigger(BatchMeta(1, 2))
    (True, False)
    """

    def _trigger(meta: BatchMeta) -> bool:
        return meta.admission_year == first_year and meta.semester == first_semester

    return _trigger


def trigger_from_policy(policy: PolicyConfig) -> TriggerPolicy:
    return first_term_trigger(policy.trigger.first_year, policy.trigger.first_semester)


def never_trigger(meta: BatchMeta) -> bool:
    return False
