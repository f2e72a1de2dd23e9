"""ثبت تاریخچهٔ اجرای بارگذاری‌ها در پایگاه دادهٔ محلی.

خطاهای DB در این مسیر صرفاً لاگ می‌شوند تا نتیجهٔ بارگذاری که پیش‌تر ثبت شده
است، به خاطر ثبت تاریخچه از دست نرود.
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path

from mentee_pairing.core.common.errors import ConflictError
from mentee_pairing.core.common.types import BatchMeta
from mentee_pairing.infra.batch_coordinator import BatchReport
from mentee_pairing.infra.errors import InfraError
from mentee_pairing.infra.local_database import BatchRunRecord, LocalDatabase

logger = logging.getLogger(__name__)


def build_batch_run_record(
    *,
    run_uuid: str,
    report: BatchReport,
    meta: BatchMeta,
    started_at: datetime,
    finished_at: datetime,
    entrypoint: str,
    source_file: Path | None,
) -> BatchRunRecord:
    return BatchRunRecord(
        run_uuid=run_uuid,
        started_at=started_at.astimezone(timezone.utc),
        finished_at=finished_at.astimezone(timezone.utc),
        entrypoint=entrypoint,
        source_file=str(source_file) if source_file is not None else None,
        admission_year=meta.admission_year,
        semester=meta.semester,
        department=meta.department,
        students_upserted=report.students_upserted,
        students_failed=report.students_failed,
        pairings_created=report.pairings_created,
        pairings_failed=report.pairings_failed,
        allocation_triggered=report.allocation_triggered,
        skip_reason=report.skip_reason.value if report.skip_reason else None,
        message=report.message,
    )


def record_batch_run(
    *,
    db: LocalDatabase | None,
    report: BatchReport,
    meta: BatchMeta,
    started_at: datetime,
    finished_at: datetime,
    entrypoint: str,
    source_file: Path | None = None,
    run_uuid: str | None = None,
) -> str | None:
    """ثبت یک اجرا؛ در صورت موفقیت شناسهٔ اجرا و در غیر این صورت ``None``."""

    run_uuid = run_uuid or uuid.uuid4().hex
    if db is None:
        logger.info("Run history disabled; skipping run_uuid=%s", run_uuid)
        return None

    record = build_batch_run_record(
        run_uuid=run_uuid,
        report=report,
        meta=meta,
        started_at=started_at,
        finished_at=finished_at,
        entrypoint=entrypoint,
        source_file=source_file,
    )
    try:
        db.initialize()
        db.insert_batch_run(record)
    except (InfraError, ConflictError):
        logger.exception("Failed to record batch run in local DB (run_uuid=%s)", run_uuid)
        return None
    return run_uuid


__all__ = ["build_batch_run_record", "record_batch_run"]
