"""پایگاه دادهٔ محلی SQLite برای دانشجویان، استادان، تخصیص‌ها و تاریخچهٔ اجرا.

این ماژول یک لایهٔ نازک روی :mod:`sqlite3` است. Schema به‌صورت دترمینیستیک
ساخته می‌شود و نسخهٔ آن در ``schema_meta`` ثبت و در هر بار مقداردهی اولیه
اعتبارسنجی می‌شود. هر upsert در تراکنش مستقل خودش اجرا می‌شود تا شکست یک قلم
روی اقلام دیگر اثری نگذارد.

نمونهٔ استفادهٔ سریع:

>>> db = LocalDatabase(Path("mentee_pairing.db"))
>>> db.initialize()
>>> db.upsert_student(StudentRecord("1001", "Ama", "Mensah", 71.5, 1), at=now)
"""
from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterator, List, Sequence

from mentee_pairing.core.common.errors import ConflictError
from mentee_pairing.core.common.types import (
    Allocator,
    AssignmentRecord,
    AssignmentStatus,
    StudentRecord,
    natural_key,
)
from mentee_pairing.infra.errors import DatabaseOperationError, SchemaVersionMismatchError
from mentee_pairing.infra.sqlite_config import configure_connection

_SCHEMA_VERSION = 1
_ISO_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BatchRunRecord:
    """نمایندهٔ ردیف جدول ``batch_runs`` برای یک بارگذاری."""

    run_uuid: str
    started_at: datetime
    finished_at: datetime
    entrypoint: str
    source_file: str | None
    admission_year: int | None
    semester: int | None
    department: str | None
    students_upserted: int
    students_failed: int
    pairings_created: int
    pairings_failed: int
    allocation_triggered: bool
    skip_reason: str | None
    message: str


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class LocalDatabase:
    """مدیریت اتصال، Schema و upsertهای کلیددار.

    هر متد یک اتصال کوتاه‌عمر باز می‌کند؛ خطای یکپارچگی SQLite به
    :class:`ConflictError` و سایر خطاها به :class:`DatabaseOperationError`
    ترجمه می‌شوند.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def _open_connection(self) -> sqlite3.Connection:
        """ایجاد اتصال پیکربندی‌شده با PRAGMA های یکسان."""

        self.path.parent.mkdir(parents=True, exist_ok=True)
        return configure_connection(sqlite3.connect(self.path))

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        """اتصال تراکنشی: commit در پایان موفق، rollback در خطا و بستن در هر حال."""

        conn = self._open_connection()
        try:
            yield conn
            conn.commit()
        except BaseException:
            conn.rollback()
            raise
        finally:
            conn.close()

    def initialize(self) -> None:
        """ایجاد Schema و اعتبارسنجی نسخه به‌صورت idempotent."""

        try:
            with self.connect() as conn:
                self._ensure_schema_meta_table(conn)
                existing_version = self._get_schema_version(conn)
                if existing_version is None:
                    self._ensure_schema(conn)
                    self._ensure_schema_meta_row(conn, version=_SCHEMA_VERSION)
                elif existing_version != _SCHEMA_VERSION:
                    raise SchemaVersionMismatchError(
                        expected_version=_SCHEMA_VERSION,
                        actual_version=existing_version,
                        message="نسخهٔ Schema پایگاه داده با نسخهٔ برنامه سازگار نیست.",
                    )
                self._ensure_schema(conn)
        except SchemaVersionMismatchError:
            raise
        except sqlite3.Error as exc:  # pragma: no cover - خطاهای غیرمنتظره
            raise DatabaseOperationError("خطا در آماده‌سازی پایگاه داده.") from exc
        logger.debug("Local DB schema ensured at %s", self.path)

    # ------------------------------------------------------------------
    # دانشجویان
    # ------------------------------------------------------------------
    def upsert_student(self, record: StudentRecord, *, at: datetime | None = None) -> StudentRecord:
        """درج یا به‌روزرسانی دانشجو با کلید ``index_number``."""

        stamp = at or utc_now()
        with self._guard("upsert student", key=record.index_number):
            with self.connect() as conn:
                conn.execute(
                    """
                    INSERT INTO students (
                        index_number, given_name, family_name, score,
                        admission_year, department, created_at, updated_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(index_number) DO UPDATE SET
                        given_name = excluded.given_name,
                        family_name = excluded.family_name,
                        score = excluded.score,
                        admission_year = excluded.admission_year,
                        department = excluded.department,
                        updated_at = excluded.updated_at
                    """,
                    (
                        record.index_number,
                        record.given_name,
                        record.family_name,
                        record.score,
                        record.admission_year,
                        record.department,
                        _to_iso(stamp),
                        _to_iso(stamp),
                    ),
                )
        return StudentRecord(
            index_number=record.index_number,
            given_name=record.given_name,
            family_name=record.family_name,
            score=record.score,
            admission_year=record.admission_year,
            department=record.department,
            updated_at=stamp,
        )

    def get_student(self, index_number: str) -> StudentRecord | None:
        with self._guard("read student", key=index_number):
            with self.connect() as conn:
                row = conn.execute(
                    "SELECT * FROM students WHERE index_number = ?", (index_number,)
                ).fetchone()
        return _row_to_student(row) if row is not None else None

    def list_students(self) -> List[StudentRecord]:
        with self._guard("list students"):
            with self.connect() as conn:
                rows = conn.execute("SELECT * FROM students").fetchall()
        students = [_row_to_student(row) for row in rows]
        return sorted(students, key=lambda student: natural_key(student.index_number))

    # ------------------------------------------------------------------
    # تخصیص‌ها
    # ------------------------------------------------------------------
    def upsert_assignment(
        self,
        student_index: str,
        allocator_id: str,
        *,
        at: datetime | None = None,
    ) -> AssignmentRecord:
        """ثبت تخصیص فعال دانشجو؛ تخصیص قبلی همان دانشجو جایگزین می‌شود."""

        stamp = at or utc_now()
        with self._guard("upsert assignment", key=student_index):
            with self.connect() as conn:
                conn.execute(
                    """
                    INSERT INTO assignments (
                        student_index, allocator_id, status, assigned_at, updated_at
                    ) VALUES (?, ?, ?, ?, ?)
                    ON CONFLICT(student_index) DO UPDATE SET
                        allocator_id = excluded.allocator_id,
                        status = excluded.status,
                        assigned_at = excluded.assigned_at,
                        updated_at = excluded.updated_at
                    """,
                    (
                        student_index,
                        allocator_id,
                        AssignmentStatus.ACTIVE.value,
                        _to_iso(stamp),
                        _to_iso(stamp),
                    ),
                )
        return AssignmentRecord(
            student_index=student_index,
            allocator_id=allocator_id,
            status=AssignmentStatus.ACTIVE,
            assigned_at=stamp,
            updated_at=stamp,
        )

    def get_assignment(self, student_index: str) -> AssignmentRecord | None:
        with self._guard("read assignment", key=student_index):
            with self.connect() as conn:
                row = conn.execute(
                    "SELECT * FROM assignments WHERE student_index = ?", (student_index,)
                ).fetchone()
        return _row_to_assignment(row) if row is not None else None

    def list_assignments(self) -> List[AssignmentRecord]:
        with self._guard("list assignments"):
            with self.connect() as conn:
                rows = conn.execute(
                    "SELECT * FROM assignments ORDER BY assigned_at, student_index"
                ).fetchall()
        return [_row_to_assignment(row) for row in rows]

    def fetch_active_mentees(self, allocator_id: str) -> List[sqlite3.Row]:
        """ردیف‌های دانشجو + تخصیص فعال یک استاد به ترتیب زمان تخصیص."""

        with self._guard("read mentees", key=allocator_id):
            with self.connect() as conn:
                return conn.execute(
                    """
                    SELECT s.index_number, s.given_name, s.family_name, s.score,
                           s.admission_year, a.assigned_at
                    FROM assignments AS a
                    JOIN students AS s ON s.index_number = a.student_index
                    WHERE a.allocator_id = ? AND a.status = ?
                    ORDER BY a.assigned_at, s.index_number
                    """,
                    (allocator_id, AssignmentStatus.ACTIVE.value),
                ).fetchall()

    def fetch_active_allocator_names(self, index_numbers: Sequence[str]) -> Dict[str, str]:
        """نگاشت شمارهٔ دانشجو به نام کامل استاد برای تخصیص‌های فعال."""

        keys = list(dict.fromkeys(index_numbers))
        if not keys:
            return {}
        placeholders = ", ".join("?" for _ in keys)
        with self._guard("read current allocators"):
            with self.connect() as conn:
                rows = conn.execute(
                    f"""
                    SELECT a.student_index, l.given_name, l.family_name
                    FROM assignments AS a
                    JOIN allocators AS l ON l.allocator_id = a.allocator_id
                    WHERE a.status = ? AND a.student_index IN ({placeholders})
                    """,
                    (AssignmentStatus.ACTIVE.value, *keys),
                ).fetchall()
        names = {
            row["student_index"]: " ".join(
                part for part in (row["given_name"], row["family_name"]) if part
            )
            for row in rows
        }
        return {key: names[key] for key in keys if key in names}

    # ------------------------------------------------------------------
    # استادان (Directory)
    # ------------------------------------------------------------------
    def upsert_allocator(self, allocator: Allocator) -> Allocator:
        email = allocator.email.strip().lower() if allocator.email else None
        with self._guard("upsert allocator", key=allocator.allocator_id):
            with self.connect() as conn:
                conn.execute(
                    """
                    INSERT INTO allocators (
                        allocator_id, given_name, family_name, department, active, email
                    ) VALUES (?, ?, ?, ?, ?, ?)
                    ON CONFLICT(allocator_id) DO UPDATE SET
                        given_name = excluded.given_name,
                        family_name = excluded.family_name,
                        department = excluded.department,
                        active = excluded.active,
                        email = excluded.email
                    """,
                    (
                        allocator.allocator_id,
                        allocator.given_name,
                        allocator.family_name,
                        allocator.department,
                        1 if allocator.active else 0,
                        email,
                    ),
                )
        return Allocator(
            allocator_id=allocator.allocator_id,
            given_name=allocator.given_name,
            family_name=allocator.family_name,
            department=allocator.department,
            active=allocator.active,
            email=email,
        )

    def list_allocators(self, *, department: str | None = None) -> List[Allocator]:
        """فهرست استادان به ترتیب پایدار نام، نام خانوادگی و شناسه."""

        with self._guard("list allocators"):
            with self.connect() as conn:
                if department is None:
                    rows = conn.execute("SELECT * FROM allocators").fetchall()
                else:
                    rows = conn.execute(
                        "SELECT * FROM allocators WHERE lower(trim(department)) = lower(trim(?))",
                        (department,),
                    ).fetchall()
        allocators = [_row_to_allocator(row) for row in rows]
        return sorted(
            allocators,
            key=lambda item: (
                item.given_name.casefold(),
                item.family_name.casefold(),
                natural_key(item.allocator_id),
            ),
        )

    def get_allocator(self, allocator_id: str) -> Allocator | None:
        with self._guard("read allocator", key=allocator_id):
            with self.connect() as conn:
                row = conn.execute(
                    "SELECT * FROM allocators WHERE allocator_id = ?", (allocator_id,)
                ).fetchone()
        return _row_to_allocator(row) if row is not None else None

    def find_allocator_by_email(self, email: str) -> Allocator | None:
        normalized = email.strip().lower()
        if not normalized:
            return None
        with self._guard("read allocator", key=normalized):
            with self.connect() as conn:
                row = conn.execute(
                    "SELECT * FROM allocators WHERE email = ?", (normalized,)
                ).fetchone()
        return _row_to_allocator(row) if row is not None else None

    # ------------------------------------------------------------------
    # تاریخچهٔ اجرا
    # ------------------------------------------------------------------
    def insert_batch_run(self, record: BatchRunRecord) -> int:
        """درج ردیف جدید در جدول ``batch_runs`` و بازگرداندن شناسه."""

        with self._guard("insert batch run", key=record.run_uuid):
            with self.connect() as conn:
                cursor = conn.execute(
                    """
                    INSERT INTO batch_runs (
                        run_uuid, started_at, finished_at, entrypoint, source_file,
                        admission_year, semester, department,
                        students_upserted, students_failed, pairings_created,
                        pairings_failed, allocation_triggered, skip_reason, message
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        record.run_uuid,
                        _to_iso(record.started_at),
                        _to_iso(record.finished_at),
                        record.entrypoint,
                        record.source_file,
                        record.admission_year,
                        record.semester,
                        record.department,
                        record.students_upserted,
                        record.students_failed,
                        record.pairings_created,
                        record.pairings_failed,
                        1 if record.allocation_triggered else 0,
                        record.skip_reason,
                        record.message,
                    ),
                )
                return int(cursor.lastrowid)

    def fetch_batch_runs(self) -> List[sqlite3.Row]:
        with self._guard("read batch runs"):
            with self.connect() as conn:
                return conn.execute("SELECT * FROM batch_runs ORDER BY id").fetchall()

    # ------------------------------------------------------------------
    # داخلی
    # ------------------------------------------------------------------
    @contextmanager
    def _guard(self, operation: str, *, key: str | None = None) -> Iterator[None]:
        """ترجمهٔ خطاهای sqlite3 به خطاهای دامنه/زیرساخت."""

        try:
            yield
        except sqlite3.IntegrityError as exc:
            raise ConflictError(f"{operation} rejected by store: {exc}", key=key) from exc
        except sqlite3.Error as exc:
            raise DatabaseOperationError(f"عملیات «{operation}» در SQLite ناکام ماند.") from exc

    @staticmethod
    def _ensure_schema(conn: sqlite3.Connection) -> None:
        """ایجاد جداول اصلی در صورت نبود."""

        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS students (
                index_number TEXT PRIMARY KEY,
                given_name TEXT NOT NULL,
                family_name TEXT NOT NULL,
                score REAL,
                admission_year INTEGER,
                department TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );
            CREATE TABLE IF NOT EXISTS allocators (
                allocator_id TEXT PRIMARY KEY,
                given_name TEXT NOT NULL,
                family_name TEXT NOT NULL,
                department TEXT,
                active INTEGER NOT NULL DEFAULT 1,
                email TEXT UNIQUE
            );
            CREATE TABLE IF NOT EXISTS assignments (
                student_index TEXT PRIMARY KEY
                    REFERENCES students(index_number),
                allocator_id TEXT NOT NULL
                    REFERENCES allocators(allocator_id),
                status TEXT NOT NULL CHECK (status IN ('active', 'inactive')),
                assigned_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );
            CREATE INDEX IF NOT EXISTS idx_assignments_allocator
                ON assignments(allocator_id, status);
            CREATE TABLE IF NOT EXISTS batch_runs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                run_uuid TEXT NOT NULL UNIQUE,
                started_at TEXT NOT NULL,
                finished_at TEXT NOT NULL,
                entrypoint TEXT NOT NULL,
                source_file TEXT,
                admission_year INTEGER,
                semester INTEGER,
                department TEXT,
                students_upserted INTEGER NOT NULL,
                students_failed INTEGER NOT NULL,
                pairings_created INTEGER NOT NULL,
                pairings_failed INTEGER NOT NULL,
                allocation_triggered INTEGER NOT NULL,
                skip_reason TEXT,
                message TEXT NOT NULL
            );
            """
        )

    @staticmethod
    def _ensure_schema_meta_table(conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS schema_meta (
                id INTEGER PRIMARY KEY CHECK (id = 1),
                schema_version INTEGER NOT NULL,
                created_at TEXT NOT NULL
            );
            """
        )

    @staticmethod
    def _ensure_schema_meta_row(conn: sqlite3.Connection, *, version: int) -> None:
        conn.execute(
            "INSERT OR IGNORE INTO schema_meta (id, schema_version, created_at) VALUES (1, ?, ?)",
            (version, _to_iso(utc_now())),
        )

    @staticmethod
    def _get_schema_version(conn: sqlite3.Connection) -> int | None:
        row = conn.execute("SELECT schema_version FROM schema_meta WHERE id = 1").fetchone()
        return int(row[0]) if row is not None else None


def _to_iso(dt: datetime) -> str:
    """تبدیل datetime به رشتهٔ ISO8601 با پسوند Z (همیشه UTC)."""

    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)
    return dt.strftime(_ISO_FORMAT)


def from_iso(text: str) -> datetime:
    return datetime.fromisoformat(text.replace("Z", "+00:00"))


def _row_to_student(row: sqlite3.Row) -> StudentRecord:
    return StudentRecord(
        index_number=row["index_number"],
        given_name=row["given_name"],
        family_name=row["family_name"],
        score=row["score"],
        admission_year=row["admission_year"],
        department=row["department"],
        updated_at=from_iso(row["updated_at"]),
    )


def _row_to_assignment(row: sqlite3.Row) -> AssignmentRecord:
    return AssignmentRecord(
        student_index=row["student_index"],
        allocator_id=row["allocator_id"],
        status=AssignmentStatus(row["status"]),
        assigned_at=from_iso(row["assigned_at"]),
        updated_at=from_iso(row["updated_at"]),
    )


def _row_to_allocator(row: sqlite3.Row) -> Allocator:
    return Allocator(
        allocator_id=row["allocator_id"],
        given_name=row["given_name"],
        family_name=row["family_name"],
        department=row["department"],
        active=bool(row["active"]),
        email=row["email"],
    )


__all__ = [
    "BatchRunRecord",
    "from_iso",
    "LocalDatabase",
    "utc_now",
]
