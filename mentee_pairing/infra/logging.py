"""راه‌اندازی لاگ از روی YAML و ثبت گزارش خطاهای مهارنشدهٔ CLI.

هر اجرای CLI یک نشست است: شناسهٔ نشست، کاربر و زیرفرمان جاری به همهٔ رکوردهای
لاگ افزوده می‌شوند و هر استثنای مهارنشده یک فایل گزارش مستقل در
``<log_dir>/errors`` می‌سازد.
"""
from __future__ import annotations

import getpass
import logging
import logging.config
import os
import sys
import threading
import traceback
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from types import TracebackType
from typing import Any, Callable, Mapping

import yaml

DEFAULT_LOGGING_CONFIG = Path("config/logging.yaml")
DEFAULT_LOG_DIR = Path("logs")
APP_LOGGER_NAME = "mentee_pairing"

# فیلدهایی که فیلتر نشست روی هر رکورد تضمین می‌کند.
_RECORD_DEFAULTS = ("error_id", "report_path")

ExcInfo = tuple[type[BaseException], BaseException, TracebackType | None]


@dataclass(slots=True, frozen=True)
class LoggingContext:
    """اطلاعات نشست جاری که به همهٔ رکوردها و گزارش‌های خطا افزوده می‌شود.

    مثال::

        >>> ctx = LoggingContext(
        ...     application="mentee-pairing",
        ...     version="1.0.0",
        ...     session_id="abc",
        ...     user="tester",
        ...     pid=123,
        ...     log_dir=Path("logs"),
        ...     error_dir=Path("logs/errors"),
        ... )
        >>> ctx.new_error_id().startswith("abc-")
        True
    """

    application: str
    version: str
    session_id: str
    user: str
    pid: int
    log_dir: Path
    error_dir: Path
    command: str = ""

    def new_error_id(self) -> str:
        return f"{self.session_id}-{uuid.uuid4().hex[:8]}"

    def report_fields(self, error_id: str, at: datetime) -> Mapping[str, object]:
        return {
            "application": self.application,
            "version": self.version,
            "command": self.command or "-",
            "session_id": self.session_id,
            "error_id": error_id,
            "user": self.user,
            "pid": self.pid,
            "timestamp": at.isoformat().replace("+00:00", "Z"),
        }

    def write_error_report(self, *, error_id: str, message: str, traceback_text: str) -> Path:
        """نوشتن گزارش خطا با سرآیند نشست در ``error_dir``."""

        now = datetime.now(timezone.utc)
        self.error_dir.mkdir(parents=True, exist_ok=True)
        prefix = f"{self.command}-" if self.command else ""
        target = self.error_dir / f"{prefix}{error_id}-{now:%Y%m%dT%H%M%SZ}.log"
        header = [f"{key}={value}" for key, value in self.report_fields(error_id, now).items()]
        body = "\n".join([*header, "", message.strip(), "", traceback_text.strip(), ""])
        target.write_text(body, encoding="utf-8")
        return target


class SessionContextFilter(logging.Filter):
    """افزودن فیلدهای نشست و زیرفرمان جاری به رکوردها."""

    def __init__(self, context: LoggingContext) -> None:
        super().__init__(name="")
        self._context = context

    def filter(self, record: logging.LogRecord) -> bool:
        ctx = self._context
        for attr, value in (
            ("session_id", ctx.session_id),
            ("user", ctx.user),
            ("application", ctx.application),
            ("app_version", ctx.version),
            ("command", ctx.command),
        ):
            if not hasattr(record, attr):
                setattr(record, attr, value)
        for attr in _RECORD_DEFAULTS:
            if not hasattr(record, attr):
                setattr(record, attr, "")
        return True


def _attach_filter(target: logging.Logger, filter_obj: SessionContextFilter) -> None:
    holders: list[logging.Filterer] = [target, *target.handlers]
    for holder in holders:
        if any(isinstance(item, SessionContextFilter) for item in holder.filters):
            continue
        holder.addFilter(filter_obj)


def _prepare_file_handlers(config: dict[str, Any], log_directory: Path | None) -> None:
    """هدایت فایل‌های لاگ نسبی به ``log_directory`` و ساخت پوشهٔ والد آن‌ها."""

    handlers = config.get("handlers")
    if not isinstance(handlers, dict):
        return
    base = log_directory if log_directory is not None else Path.cwd()
    for handler_cfg in handlers.values():
        if not isinstance(handler_cfg, dict) or not handler_cfg.get("filename"):
            continue
        file_path = Path(str(handler_cfg["filename"])).expanduser()
        if not file_path.is_absolute():
            file_path = base / file_path.name
        file_path = file_path.resolve()
        file_path.parent.mkdir(parents=True, exist_ok=True)
        handler_cfg["filename"] = str(file_path)


def setup_logging(
    config_path: str | Path = DEFAULT_LOGGING_CONFIG,
    log_dir: str | Path | None = None,
) -> None:
    """بارگذاری پیکربندی logging از فایل YAML و اعمال آن با ``dictConfig``.

    Raises:
        FileNotFoundError: اگر فایل پیکربندی وجود نداشته باشد.
        ValueError: اگر ساختار YAML نگاشت نباشد.
    """

    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"logging config not found: {path}")

    data: Any = yaml.safe_load(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError("logging config must be a mapping")

    _prepare_file_handlers(data, Path(log_dir).expanduser().resolve() if log_dir else None)
    logging.config.dictConfig(data)


def configure_logging(
    *,
    app_name: str,
    app_version: str,
    logger_name: str = APP_LOGGER_NAME,
    config_path: str | Path = DEFAULT_LOGGING_CONFIG,
    log_dir: str | Path | None = None,
    command: str = "",
) -> LoggingContext:
    """پیکربندی logging، نصب فیلتر نشست و بازگرداندن کانتکست آن."""

    log_directory = Path(log_dir or DEFAULT_LOG_DIR).expanduser().resolve()
    error_directory = log_directory / "errors"
    error_directory.mkdir(parents=True, exist_ok=True)
    setup_logging(config_path, log_directory)

    context = LoggingContext(
        application=app_name,
        version=app_version,
        session_id=uuid.uuid4().hex,
        user=getpass.getuser(),
        pid=os.getpid(),
        log_dir=log_directory,
        error_dir=error_directory,
        command=command,
    )
    session_filter = SessionContextFilter(context)
    for name in ("", logger_name):
        _attach_filter(logging.getLogger(name or None), session_filter)
    logging.captureWarnings(True)
    return context


def install_exception_hook(logger: logging.Logger, context: LoggingContext) -> Callable[[], None]:
    """نصب هندلر خطای سراسری؛ تابع بازگشتی هندلرهای قبلی را برمی‌گرداند."""

    previous_sys_hook = sys.excepthook
    previous_thread_hook = threading.excepthook

    def _report(exc_info: ExcInfo, source: str) -> None:
        exc_type, exc_value, exc_tb = exc_info
        error_id = context.new_error_id()
        report_path = context.write_error_report(
            error_id=error_id,
            message=f"{source}: {exc_value}",
            traceback_text="".join(traceback.format_exception(exc_type, exc_value, exc_tb)),
        )
        logger.critical(
            "Unhandled exception in %s (command=%s)",
            source,
            context.command or "-",
            exc_info=exc_info,
            extra={"error_id": error_id, "report_path": str(report_path)},
        )

    def _main_hook(
        exc_type: type[BaseException],
        exc_value: BaseException,
        exc_tb: TracebackType | None,
    ) -> None:
        if not issubclass(exc_type, KeyboardInterrupt):
            _report((exc_type, exc_value, exc_tb), "main-thread")
        previous_sys_hook(exc_type, exc_value, exc_tb)

    def _thread_hook(args: threading.ExceptHookArgs) -> None:
        if args.exc_value is not None:
            source = getattr(args.thread, "name", None) or "thread"
            _report((args.exc_type, args.exc_value, args.exc_traceback), source)
        previous_thread_hook(args)

    sys.excepthook = _main_hook
    threading.excepthook = _thread_hook

    def restore() -> None:
        sys.excepthook = previous_sys_hook
        threading.excepthook = previous_thread_hook

    return restore


__all__ = [
    "APP_LOGGER_NAME",
    "DEFAULT_LOG_DIR",
    "DEFAULT_LOGGING_CONFIG",
    "LoggingContext",
    "SessionContextFilter",
    "configure_logging",
    "install_exception_hook",
    "setup_logging",
]
