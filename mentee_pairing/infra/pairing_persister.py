"""ثبت idempotent جفت‌های تخصیص با ایزوله‌سازی شکست هر جفت."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Sequence, Tuple

from mentee_pairing.core.common.errors import ConflictError
from mentee_pairing.core.common.reasons import FailureCode
from mentee_pairing.core.common.types import AssignmentRecord, ItemFailure, Pairing
from mentee_pairing.infra.errors import InfraError
from mentee_pairing.infra.local_database import utc_now
from mentee_pairing.infra.repository_base import AssignmentStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PersistResult:
    attempted: int
    persisted: Tuple[AssignmentRecord, ...]
    failures: Tuple[ItemFailure, ...]

    @property
    def created(self) -> int:
        return len(self.persisted)

    @property
    def failed(self) -> int:
        return len(self.failures)


class PairingPersister:
    """upsert تخصیص با کلید شمارهٔ دانشجو؛ تخصیص قبلی جایگزین می‌شود."""

    def __init__(
        self, store: AssignmentStore, *, clock: Callable[[], datetime] = utc_now
    ) -> None:
        self._store = store
        self._clock = clock

    def persist(self, pairings: Sequence[Pairing]) -> PersistResult:
        persisted: List[AssignmentRecord] = []
        failures: List[ItemFailure] = []
        for pairing in pairings:
            student_index = pairing.student.index_number
            allocator_id = pairing.allocator.allocator_id
            try:
                persisted.append(
                    self._store.upsert_assignment(student_index, allocator_id, at=self._clock())
                )
            except ConflictError as exc:
                logger.warning(
                    "Pairing %s -> %s rejected by store: %s", student_index, allocator_id, exc
                )
                failures.append(
                    ItemFailure(student_index, None, FailureCode.STORE_CONFLICT, str(exc))
                )
            except InfraError as exc:
                logger.error(
                    "Pairing %s -> %s could not be stored: %s", student_index, allocator_id, exc
                )
                failures.append(ItemFailure(student_index, None, FailureCode.STORE_ERROR, str(exc)))
            except Exception as exc:
                logger.exception(
                    "Pairing %s -> %s failed in store %s",
                    student_index,
                    allocator_id,
                    type(self._store).__name__,
                )
                failures.append(
                    ItemFailure(
                        student_index, None, FailureCode.STORE_ERROR, f"{type(exc).__name__}: {exc}"
                    )
                )

        logger.info("Persisted pairings: %d of %d", len(persisted), len(pairings))
        return PersistResult(
            attempted=len(pairings), persisted=tuple(persisted), failures=tuple(failures)
        )


__all__ = ["PairingPersister", "PersistResult"]
