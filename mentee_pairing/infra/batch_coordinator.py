"""هماهنگ‌کنندهٔ یک بارگذاری: ثبت دانشجویان، تصمیم تخصیص، تخصیص و ثبت جفت‌ها.

جریان:

1. ردیف‌ها اعتبارسنجی و دانشجویان upsert می‌شوند (شکست‌ها شمرده می‌شوند).
2. سیاست Trigger روی متادیتای دسته ارزیابی می‌شود.
3. در صورت فعال شدن، استادان فعال دپارتمان خوانده، جفت‌ها با موتور رفت و
   برگشتی ساخته و با Persister ثبت می‌شوند.
4. گزارش خلاصه برگردانده می‌شود.

نبود استاد فعال فقط مرحلهٔ تخصیص را لغو می‌کند؛ نتایج ثبت دانشجو حفظ می‌شوند.
تخصیص یک دپارتمان در یک پردازه با قفل مختص همان دپارتمان سریالی می‌شود.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Sequence, Tuple

from mentee_pairing.core.allocation.engine import allocate_bidirectional
from mentee_pairing.core.allocation.mentor_pool import select_active_allocators
from mentee_pairing.core.allocation.trigger import TriggerPolicy, trigger_from_policy
from mentee_pairing.core.common.errors import InvalidBatchError, NoEligibleAllocators
from mentee_pairing.core.common.reasons import FailureCode, reason_message
from mentee_pairing.core.common.types import BatchMeta, ItemFailure, Pairing, StudentRecord
from mentee_pairing.core.policy_loader import PolicyConfig, default_policy
from mentee_pairing.core.roster_schema import derive_batch_meta, validate_roster
from mentee_pairing.infra.local_database import utc_now
from mentee_pairing.infra.logging_ext import StepLogger
from mentee_pairing.infra.pairing_persister import PairingPersister
from mentee_pairing.infra.repository_base import AllocatorDirectory, AssignmentStore, StudentStore
from mentee_pairing.infra.roster_ingestor import RosterIngestor

logger = logging.getLogger(__name__)

STUDENTS_ONLY_MESSAGE = "students-only update"
STUDENTS_AND_PAIRINGS_MESSAGE = "students + pairings created"

_LOCKS_GUARD = threading.Lock()
_DEPARTMENT_LOCKS: Dict[str, threading.Lock] = {}


def department_lock(department: str) -> threading.Lock:
    """قفل یکتای دپارتمان در پردازهٔ جاری (بدون حساسیت به حروف)."""

    key = department.strip().casefold()
    with _LOCKS_GUARD:
        lock = _DEPARTMENT_LOCKS.get(key)
        if lock is None:
            lock = threading.Lock()
            _DEPARTMENT_LOCKS[key] = lock
        return lock


@dataclass(frozen=True)
class BatchReport:
    """خلاصهٔ یک بارگذاری برای فراخواننده."""

    students_upserted: int
    students_failed: int
    pairings_created: int
    pairings_failed: int
    allocation_triggered: bool
    skip_reason: FailureCode | None = None
    failures: Tuple[ItemFailure, ...] = ()
    pairings: Tuple[Pairing, ...] = field(default=(), repr=False)

    @property
    def partial_failure(self) -> bool:
        return self.students_failed > 0 or self.pairings_failed > 0

    @property
    def pairing_ran(self) -> bool:
        return self.allocation_triggered and self.skip_reason is None

    @property
    def message(self) -> str:
        if self.pairing_ran:
            return STUDENTS_AND_PAIRINGS_MESSAGE
        if self.skip_reason is None:
            return STUDENTS_ONLY_MESSAGE
        return f"{STUDENTS_ONLY_MESSAGE} ({reason_message(self.skip_reason)})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "studentsUpserted": self.students_upserted,
            "studentsFailed": self.students_failed,
            "pairingsCreated": self.pairings_created,
            "pairingsFailed": self.pairings_failed,
            "allocationTriggered": self.allocation_triggered,
            "skipReason": self.skip_reason.value if self.skip_reason else None,
            "partialFailure": self.partial_failure,
            "message": self.message,
            "failures": [
                {
                    "key": failure.key,
                    "rowNumber": failure.row_number,
                    "code": failure.code.value,
                    "message": failure.message,
                }
                for failure in self.failures
            ],
        }


def _distinct_students(students: Sequence[StudentRecord]) -> List[StudentRecord]:
    """یک رکورد برای هر شماره: آخرین دادهٔ ثبت‌شده در جایگاه نخستین ظهور."""

    latest: Dict[str, StudentRecord] = {}
    for student in students:
        latest[student.index_number] = student
    return list(latest.values())


class BatchCoordinator:
    """اجرای کامل یک بارگذاری روی مخزن‌های تزریق‌شده."""

    def __init__(
        self,
        *,
        students: StudentStore,
        assignments: AssignmentStore,
        directory: AllocatorDirectory,
        policy: PolicyConfig | None = None,
        trigger: TriggerPolicy | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._policy = policy or default_policy()
        self._trigger = trigger or trigger_from_policy(self._policy)
        self._directory = directory
        self._ingestor = RosterIngestor(
            students, clock=clock, score_bounds=self._policy.score_bounds
        )
        self._persister = PairingPersister(assignments, clock=clock)
        self._steps = StepLogger(logger, prefix="batch")

    def run(
        self,
        rows: Sequence[Mapping[str, Any]],
        meta: BatchMeta | None = None,
        *,
        require_allocation: bool = False,
    ) -> BatchReport:
        """اجرای بارگذاری؛ فقط دستهٔ ساختاراً نامعتبر یا تخصیص اجباری بی‌استاد خطا می‌دهد.

        Raises:
            InvalidBatchError: اگر ``rows`` لیست ردیف نباشد یا خالی باشد.
            NoEligibleAllocators: فقط وقتی ``require_allocation`` فعال است.
        """

        if isinstance(rows, (str, bytes, Mapping)) or not isinstance(rows, Sequence):
            raise InvalidBatchError("Batch rows must be a list of mappings")
        if not rows:
            raise InvalidBatchError("Batch contains no rows")
        batch_meta = meta if meta is not None else derive_batch_meta(rows)

        with self._steps.step("ingest", rows=len(rows)):
            results = validate_roster(rows, batch_meta, score_bounds=self._policy.score_bounds)
            ingest = self._ingestor.ingest(results)

        triggered = bool(self._trigger(batch_meta))
        if not triggered:
            logger.info("Allocation not triggered for %s", batch_meta)
            return self._report(ingest.students, ingest.failures, False, FailureCode.TRIGGER_NOT_MET)

        department = batch_meta.department
        if not department:
            if require_allocation:
                raise NoEligibleAllocators(department=None)
            logger.warning("Allocation triggered but batch has no department")
            return self._report(ingest.students, ingest.failures, True, FailureCode.MISSING_DEPARTMENT)

        with department_lock(department):
            with self._steps.step("allocate", department=department):
                pool = select_active_allocators(
                    self._directory.list_allocators(department=department), department
                )
                if not pool:
                    if require_allocation:
                        raise NoEligibleAllocators(department=department)
                    logger.warning("No active allocators found for department: %s", department)
                    return self._report(
                        ingest.students,
                        ingest.failures,
                        True,
                        FailureCode.NO_ELIGIBLE_ALLOCATORS,
                    )
                pairings = allocate_bidirectional(
                    _distinct_students(ingest.students), pool, department=department
                )
            with self._steps.step("persist", pairs=len(pairings)):
                persisted = self._persister.persist(pairings)

        report = BatchReport(
            students_upserted=ingest.upserted,
            students_failed=ingest.failed,
            pairings_created=persisted.created,
            pairings_failed=persisted.failed,
            allocation_triggered=True,
            failures=ingest.failures + persisted.failures,
            pairings=tuple(pairings),
        )
        logger.info(
            "Batch finished: %s (students %d/%d, pairings %d/%d)",
            report.message,
            report.students_upserted,
            report.students_failed,
            report.pairings_created,
            report.pairings_failed,
        )
        return report

    @staticmethod
    def _report(
        students: Sequence[StudentRecord],
        failures: Tuple[ItemFailure, ...],
        triggered: bool,
        skip_reason: FailureCode,
    ) -> BatchReport:
        report = BatchReport(
            students_upserted=len(students),
            students_failed=len(failures),
            pairings_created=0,
            pairings_failed=0,
            allocation_triggered=triggered,
            skip_reason=skip_reason,
            failures=failures,
        )
        logger.info(
            "Batch finished: %s (students %d/%d)",
            report.message,
            report.students_upserted,
            report.students_failed,
        )
        return report


__all__ = [
    "BatchCoordinator",
    "BatchReport",
    "STUDENTS_AND_PAIRINGS_MESSAGE",
    "STUDENTS_ONLY_MESSAGE",
    "department_lock",
]
