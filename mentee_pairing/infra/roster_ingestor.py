"""ثبت دانشجویان فهرست بارگذاری‌شده با ایزوله‌سازی شکست هر ردیف.

هر ردیف مستقل پردازش می‌شود: ردیف ردشدهٔ اسکیما یا upsert ناموفق شمرده و لاگ
می‌شود و پردازش با ردیف بعدی ادامه می‌یابد.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, List, Mapping, Sequence, Tuple

from mentee_pairing.core.common.errors import ConflictError
from mentee_pairing.core.common.normalization import compose_student_name
from mentee_pairing.core.common.reasons import FailureCode
from mentee_pairing.core.common.types import BatchMeta, ItemFailure, RosterRow, StudentRecord
from mentee_pairing.core.policy_loader import ScoreBounds
from mentee_pairing.core.roster_schema import (
    DEFAULT_SCORE_BOUNDS,
    RowRejected,
    RowResult,
    validate_roster,
)
from mentee_pairing.infra.errors import InfraError
from mentee_pairing.infra.local_database import utc_now
from mentee_pairing.infra.repository_base import StudentStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IngestResult:
    """دانشجویان ثبت‌شده به ترتیب ورودی و شکست‌های ردیفی."""

    students: Tuple[StudentRecord, ...]
    failures: Tuple[ItemFailure, ...]

    @property
    def upserted(self) -> int:
        return len(self.students)

    @property
    def failed(self) -> int:
        return len(self.failures)


def build_student_record(row: RosterRow) -> StudentRecord:
    """ساخت موجودیت دانشجو از ردیف معتبر با نام نرمال‌شده."""

    given_name, family_name = compose_student_name(row.raw_name)
    return StudentRecord(
        index_number=row.external_index,
        given_name=given_name,
        family_name=family_name,
        score=row.score,
        admission_year=row.admission_year,
        department=row.department,
    )


class RosterIngestor:
    """upsert دانشجویان از نتایج اسکیما؛ هرگز به خاطر یک ردیف متوقف نمی‌شود."""

    def __init__(
        self,
        store: StudentStore,
        *,
        clock: Callable[[], datetime] = utc_now,
        score_bounds: ScoreBounds = DEFAULT_SCORE_BOUNDS,
    ) -> None:
        self._store = store
        self._clock = clock
        self._score_bounds = score_bounds

    def ingest_rows(self, rows: Sequence[Mapping[str, Any]], meta: BatchMeta) -> IngestResult:
        """اعتبارسنجی و ثبت ردیف‌های خام در یک گام."""

        return self.ingest(validate_roster(rows, meta, score_bounds=self._score_bounds))

    def ingest(self, results: Sequence[RowResult]) -> IngestResult:
        students: List[StudentRecord] = []
        failures: List[ItemFailure] = []
        for result in results:
            if isinstance(result, RowRejected):
                failures.append(
                    ItemFailure(
                        key=result.key,
                        row_number=result.row_number,
                        code=result.code,
                        message=result.message,
                    )
                )
                logger.warning(
                    "Row %s rejected (%s): %s", result.row_number, result.code, result.message
                )
                continue
            failure = self._upsert(result.row, students)
            if failure is not None:
                failures.append(failure)

        logger.info("Ingested roster: %d upserted, %d failed", len(students), len(failures))
        return IngestResult(students=tuple(students), failures=tuple(failures))

    def _upsert(self, row: RosterRow, sink: List[StudentRecord]) -> ItemFailure | None:
        record = build_student_record(row)
        try:
            sink.append(self._store.upsert_student(record, at=self._clock()))
        except ConflictError as exc:
            logger.warning("Student %s rejected by store: %s", row.external_index, exc)
            return ItemFailure(
                key=row.external_index,
                row_number=row.row_number,
                code=FailureCode.STORE_CONFLICT,
                message=str(exc),
            )
        except InfraError as exc:
            logger.error("Student %s could not be stored: %s", row.external_index, exc)
            return ItemFailure(
                key=row.external_index,
                row_number=row.row_number,
                code=FailureCode.STORE_ERROR,
                message=str(exc),
            )
        except Exception as exc:
            logger.exception(
                "Student %s failed in store %s", row.external_index, type(self._store).__name__
            )
            return ItemFailure(
                key=row.external_index,
                row_number=row.row_number,
                code=FailureCode.STORE_ERROR,
                message=f"{type(exc).__name__}: {exc}",
            )
        return None


__all__ = ["IngestResult", "RosterIngestor", "build_student_record"]
