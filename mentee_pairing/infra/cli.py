"""رابط خط فرمان headless برای بارگذاری فهرست، ورود استادان و پرس‌وجوها.

زیرفرمان‌ها:

- ``upload``: ثبت دانشجویان و در صورت فعال شدن Trigger، تخصیص و ثبت جفت‌ها.
- ``preview``: اعتبارسنجی فایل بدون نوشتن و نمایش دانشجویان دارای تخصیص فعال.
- ``import-allocators``: ورود CSV استادان (name, email, department, status).
- ``mentees``: منتی‌های فعال یک استاد (با ایمیل یا شناسه).
- ``check-pairings``: استاد فعلی هر شمارهٔ دانشجویی.

کد خروج ۰ یعنی موفقیت؛ ۲ یعنی ورودی نامعتبر یا تخصیص اجباری ناموفق.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Sequence

from mentee_pairing.core.allocation.engine import load_by_allocator, pairings_to_frame
from mentee_pairing.core.common.errors import InvalidBatchError, NoEligibleAllocators
from mentee_pairing.core.common.types import BatchMeta
from mentee_pairing.core.policy_loader import (
    DEFAULT_POLICY_PATH,
    PolicyConfig,
    default_policy,
    load_policy,
)
from mentee_pairing.core.roster_schema import RowRejected, derive_batch_meta, validate_roster
from mentee_pairing.infra.batch_coordinator import BatchCoordinator, BatchReport
from mentee_pairing.infra.directory_import import import_allocators_csv
from mentee_pairing.infra.errors import InfraError, RosterFileError
from mentee_pairing.infra.history_store import record_batch_run
from mentee_pairing.infra.io_utils import load_roster_rows, write_xlsx_atomic
from mentee_pairing.infra.local_database import LocalDatabase, utc_now
from mentee_pairing.infra.logging import (
    APP_LOGGER_NAME,
    DEFAULT_LOGGING_CONFIG,
    configure_logging,
    install_exception_hook,
)
from mentee_pairing.infra.queries import current_allocators, mentees_frame, mentees_of
from mentee_pairing.infra.repository_base import (
    SQLiteAllocatorDirectory,
    SQLiteAssignmentStore,
    SQLiteStudentStore,
)

__version__ = "1.0.0"

_DEFAULT_LOCAL_DB_PATH = Path("mentee_pairing.db")

logger = logging.getLogger(__name__)

Runner = Callable[[argparse.Namespace, PolicyConfig], int]


def _add_local_db_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--local-db",
        dest="local_db_path",
        default=str(_DEFAULT_LOCAL_DB_PATH),
        help="مسیر فایل SQLite دانشجویان، استادان و تخصیص‌ها",
    )


def _add_batch_meta_args(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group("متادیتای دسته")
    group.add_argument("--admission-year", type=int, default=None, help="سال ورود یا سال تحصیلی")
    group.add_argument("--semester", type=int, default=None, help="نیم‌سال")
    group.add_argument("--department", default=None, help="دپارتمان دسته")


def _resolve_meta(args: argparse.Namespace, rows: Sequence[Mapping[str, Any]]) -> BatchMeta:
    """متادیتای صریح CLI بر مقادیر استخراج‌شده از نخستین ردیف مقدم است."""

    derived = derive_batch_meta(rows) if rows else BatchMeta()
    return BatchMeta(
        admission_year=(
            args.admission_year if args.admission_year is not None else derived.admission_year
        ),
        semester=args.semester if args.semester is not None else derived.semester,
        department=args.department or derived.department,
    )


def _resolve_policy(args: argparse.Namespace) -> PolicyConfig:
    """بارگذاری policy؛ نبود فایل پیش‌فرض به سیاست داخلی برمی‌گردد."""

    policy_path = Path(args.policy) if args.policy else None
    if policy_path is None:
        if DEFAULT_POLICY_PATH.exists():
            return load_policy(DEFAULT_POLICY_PATH)
        logger.debug("Policy file %s not found; using built-in defaults", DEFAULT_POLICY_PATH)
        return default_policy()
    return load_policy(policy_path)


def _open_db(args: argparse.Namespace) -> LocalDatabase:
    db = LocalDatabase(Path(args.local_db_path))
    db.initialize()
    return db


def _print_report(report: BatchReport, *, as_json: bool) -> None:
    if as_json:
        print(json.dumps(report.to_dict(), ensure_ascii=False, indent=2))
        return
    print(f"✅ {report.message}")
    print(f"   students: {report.students_upserted} upserted, {report.students_failed} failed")
    if report.allocation_triggered:
        print(f"   pairings: {report.pairings_created} created, {report.pairings_failed} failed")
    for failure in report.failures:
        location = f"row {failure.row_number}" if failure.row_number is not None else "pairing"
        print(f"   ⚠️ {location} [{failure.code}] {failure.key or '-'}: {failure.message}")


def _run_upload(args: argparse.Namespace, policy: PolicyConfig) -> int:
    source = Path(args.roster)
    rows = load_roster_rows(source, policy)
    meta = _resolve_meta(args, rows)
    db = _open_db(args)
    coordinator = BatchCoordinator(
        students=SQLiteStudentStore(db),
        assignments=SQLiteAssignmentStore(db),
        directory=SQLiteAllocatorDirectory(db),
        policy=policy,
    )

    started_at = utc_now()
    report = coordinator.run(rows, meta, require_allocation=args.require_allocation)
    finished_at = utc_now()

    record_batch_run(
        db=None if args.disable_history else db,
        report=report,
        meta=meta,
        started_at=started_at,
        finished_at=finished_at,
        entrypoint="upload",
        source_file=source,
    )

    if args.output and report.pairings:
        output = write_xlsx_atomic(
            {
                "pairings": pairings_to_frame(report.pairings),
                "load": load_by_allocator(report.pairings),
            },
            args.output,
        )
        logger.info("Pairings exported to %s", output)

    _print_report(report, as_json=args.json)
    return 0


def _run_preview(args: argparse.Namespace, policy: PolicyConfig) -> int:
    rows = load_roster_rows(Path(args.roster), policy)
    meta = _resolve_meta(args, rows)
    results = validate_roster(rows, meta, score_bounds=policy.score_bounds)
    rejected = [result for result in results if isinstance(result, RowRejected)]
    accepted_keys = [
        result.row.external_index for result in results if not isinstance(result, RowRejected)
    ]

    already_paired: Dict[str, str] = {}
    db_path = Path(args.local_db_path)
    if db_path.exists():
        already_paired = current_allocators(_open_db(args), accepted_keys)

    if args.json:
        payload = {
            "accepted": len(accepted_keys),
            "rejected": [
                {
                    "rowNumber": item.row_number,
                    "key": item.key,
                    "code": item.code.value,
                    "message": item.message,
                }
                for item in rejected
            ],
            "alreadyPaired": already_paired,
            "meta": {
                "admissionYear": meta.admission_year,
                "semester": meta.semester,
                "department": meta.department,
            },
        }
        print(json.dumps(payload, ensure_ascii=False, indent=2))
        return 0

    print(f"accepted rows: {len(accepted_keys)}, rejected rows: {len(rejected)}")
    for item in rejected:
        print(f"   ⚠️ row {item.row_number} [{item.code}] {item.key or '-'}: {item.message}")
    for key, name in already_paired.items():
        print(f"   {key} already paired with {name}")
    return 0


def _run_import_allocators(args: argparse.Namespace, policy: PolicyConfig) -> int:
    result = import_allocators_csv(LocalDatabase(Path(args.local_db_path)), args.csv)
    print(
        f"✅ allocators imported: {len(result.imported)}, "
        f"skipped: {result.skipped}, failed: {result.failed}"
    )
    return 0


def _run_mentees(args: argparse.Namespace, policy: PolicyConfig) -> int:
    db = _open_db(args)
    if args.email:
        allocator = db.find_allocator_by_email(args.email)
        if allocator is None:
            print(f"❌ No allocator registered with email: {args.email}", file=sys.stderr)
            return 2
        allocator_id = allocator.allocator_id
    else:
        allocator_id = args.allocator_id

    frame = mentees_frame(mentees_of(db, allocator_id))
    if args.output:
        write_xlsx_atomic({"mentees": frame}, args.output)
    if args.json:
        print(frame.to_json(orient="records", force_ascii=False))
    elif frame.empty:
        print("no active mentees")
    else:
        print(frame.to_string(index=False))
    return 0


def _run_check_pairings(args: argparse.Namespace, policy: PolicyConfig) -> int:
    keys: List[object] = list(args.index or [])
    if args.roster:
        keys.extend(row.get("external_index") for row in load_roster_rows(Path(args.roster), policy))
    names = current_allocators(_open_db(args), keys)
    if args.json:
        print(json.dumps(names, ensure_ascii=False, indent=2))
        return 0
    if not names:
        print("no active pairings found")
    for key, name in names.items():
        print(f"{key}\t{name}")
    return 0


_RUNNERS: Dict[str, Runner] = {
    "upload": _run_upload,
    "preview": _run_preview,
    "import-allocators": _run_import_allocators,
    "mentees": _run_mentees,
    "check-pairings": _run_check_pairings,
}


def _build_parser() -> argparse.ArgumentParser:
    """ایجاد پارسر دستورات با زیرفرمان‌های بارگذاری، ورود استادان و پرس‌وجو."""

    parser = argparse.ArgumentParser(prog="mentee-pairing", description="Mentee allocation CLI")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--policy", default=None, help="مسیر فایل policy.json")
    parser.add_argument(
        "--log-config",
        default=str(DEFAULT_LOGGING_CONFIG),
        help="مسیر پیکربندی YAML لاگ (در صورت نبود، لاگ فایل فعال نمی‌شود)",
    )
    parser.add_argument("--log-dir", default=None, help="پوشهٔ فایل‌های لاگ و گزارش خطا")
    sub = parser.add_subparsers(dest="command", required=True)

    upload_cmd = sub.add_parser("upload", help="بارگذاری فهرست و تخصیص")
    upload_cmd.add_argument("--roster", required=True, help="مسیر فایل Excel/CSV دانشجویان")
    upload_cmd.add_argument("--output", default=None, help="مسیر Excel خروجی جفت‌ها")
    upload_cmd.add_argument(
        "--require-allocation",
        action="store_true",
        help="نبود استاد فعال را خطای قطعی در نظر بگیر",
    )
    upload_cmd.add_argument(
        "--disable-history", action="store_true", help="عدم ثبت تاریخچهٔ اجرا"
    )
    upload_cmd.add_argument("--json", action="store_true", help="چاپ گزارش به‌صورت JSON")
    _add_batch_meta_args(upload_cmd)
    _add_local_db_args(upload_cmd)

    preview_cmd = sub.add_parser("preview", help="اعتبارسنجی فایل بدون نوشتن")
    preview_cmd.add_argument("--roster", required=True, help="مسیر فایل Excel/CSV دانشجویان")
    preview_cmd.add_argument("--json", action="store_true")
    _add_batch_meta_args(preview_cmd)
    _add_local_db_args(preview_cmd)

    import_cmd = sub.add_parser("import-allocators", help="ورود CSV استادان")
    import_cmd.add_argument("--csv", required=True, help="مسیر CSV با ستون‌های name,email,...")
    _add_local_db_args(import_cmd)

    mentees_cmd = sub.add_parser("mentees", help="منتی‌های فعال یک استاد")
    who = mentees_cmd.add_mutually_exclusive_group(required=True)
    who.add_argument("--email", default=None)
    who.add_argument("--allocator-id", default=None)
    mentees_cmd.add_argument("--output", default=None, help="مسیر Excel خروجی")
    mentees_cmd.add_argument("--json", action="store_true")
    _add_local_db_args(mentees_cmd)

    check_cmd = sub.add_parser("check-pairings", help="استاد فعلی شماره‌های دانشجویی")
    check_cmd.add_argument("--index", nargs="+", default=None, help="شماره‌های دانشجویی")
    check_cmd.add_argument("--roster", default=None, help="یا فایل فهرست دانشجویان")
    check_cmd.add_argument("--json", action="store_true")
    _add_local_db_args(check_cmd)
    return parser


def _bootstrap_logging(args: argparse.Namespace) -> Callable[[], None] | None:
    config_path = Path(args.log_config)
    if not config_path.exists():
        return None
    context = configure_logging(
        app_name="mentee-pairing",
        app_version=__version__,
        logger_name=APP_LOGGER_NAME,
        config_path=config_path,
        log_dir=args.log_dir,
        command=args.command,
    )
    return install_exception_hook(logging.getLogger(APP_LOGGER_NAME), context)


def main(
    argv: Sequence[str] | None = None,
    *,
    runners: Mapping[str, Runner] | None = None,
) -> int:
    """نقطهٔ ورود CLI؛ خروجی ۰ به معنای موفقیت است."""

    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.command == "check-pairings" and not (args.index or args.roster):
        parser.error("check-pairings needs --index or --roster")

    restore_hook = _bootstrap_logging(args)
    try:
        policy = _resolve_policy(args)
        runner = {**_RUNNERS, **(runners or {})}[args.command]
        return runner(args, policy)
    except (InvalidBatchError, NoEligibleAllocators, RosterFileError, FileNotFoundError) as exc:
        logger.error("%s aborted: %s", args.command, exc)
        print(f"❌ {exc}", file=sys.stderr)
        return 2
    except ValueError as exc:
        logger.error("%s aborted by invalid input: %s", args.command, exc)
        print(f"❌ {exc}", file=sys.stderr)
        return 2
    except InfraError as exc:
        logger.error("%s failed in storage: %s", args.command, exc)
        print(f"❌ {exc}", file=sys.stderr)
        return 1
    finally:
        if restore_hook is not None:
            restore_hook()


if __name__ == "__main__":
    raise SystemExit(main())
