from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from mentee_pairing.core.common.reasons import FailureCode
from mentee_pairing.core.common.types import BatchMeta
from mentee_pairing.infra.batch_coordinator import BatchReport
from mentee_pairing.infra.history_store import record_batch_run
from mentee_pairing.infra.local_database import LocalDatabase

T0 = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)
META = BatchMeta(admission_year=2, semester=1, department="Computer Engineering")
REPORT = BatchReport(
    students_upserted=3,
    students_failed=1,
    pairings_created=0,
    pairings_failed=0,
    allocation_triggered=False,
    skip_reason=FailureCode.TRIGGER_NOT_MET,
)


def test_record_batch_run_persists_summary(local_db: LocalDatabase) -> None:
    run_uuid = record_batch_run(
        db=local_db,
        report=REPORT,
        meta=META,
        started_at=T0,
        finished_at=T0 + timedelta(seconds=2),
        entrypoint="upload",
        source_file=Path("roster.xlsx"),
        run_uuid="fixed-run",
    )

    assert run_uuid == "fixed-run"
    row = local_db.fetch_batch_runs()[0]
    assert row["students_upserted"] == 3
    assert row["skip_reason"] == "TRIGGER_NOT_MET"
    assert row["message"].startswith("students-only update")
    assert row["source_file"] == "roster.xlsx"


def test_record_batch_run_disabled_without_db(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.INFO, logger="mentee_pairing.infra.history_store"):
        result = record_batch_run(
            db=None,
            report=REPORT,
            meta=META,
            started_at=T0,
            finished_at=T0,
            entrypoint="upload",
        )
    assert result is None
    assert "Run history disabled" in caplog.text


def test_record_batch_run_logs_and_swallows_store_errors(
    local_db: LocalDatabase, caplog: pytest.LogCaptureFixture
) -> None:
    kwargs = dict(
        db=local_db,
        report=REPORT,
        meta=META,
        started_at=T0,
        finished_at=T0,
        entrypoint="upload",
        run_uuid="dup",
    )
    assert record_batch_run(**kwargs) == "dup"
    with caplog.at_level(logging.ERROR, logger="mentee_pairing.infra.history_store"):
        assert record_batch_run(**kwargs) is None
    assert "Failed to record batch run" in caplog.text
    assert len(local_db.fetch_batch_runs()) == 1
