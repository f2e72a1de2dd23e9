"""پیکربندی یکسان اتصال SQLite برای مخزن تخصیص منتی."""
from __future__ import annotations

import sqlite3

_ALLOWED_PRAGMAS = frozenset({"foreign_keys", "journal_mode", "synchronous", "busy_timeout"})

# میلی‌ثانیه؛ بارگذاری‌های هم‌زمان روی یک فایل به‌جای شکست فوری منتظر می‌مانند.
DEFAULT_BUSY_TIMEOUT_MS = 5000


def _set_pragma(conn: sqlite3.Connection, name: str, value: str) -> None:
    """اجرای PRAGMA از فهرست مجاز روی اتصال.

    مثال
    ----
    >>> import sqlite3
    >>> conn = sqlite3.connect(":memory:")
    >>> _set_pragma(conn, "foreign_keys", "ON")
    """
    if name not in _ALLOWED_PRAGMAS:
        raise ValueError(f"Unsupported PRAGMA: {name}")
    conn.execute(f"PRAGMA {name} = {value};")


def configure_connection(
    conn: sqlite3.Connection, *, busy_timeout_ms: int = DEFAULT_BUSY_TIMEOUT_MS
) -> sqlite3.Connection:
    """فعال‌سازی کلید خارجی، ژورنال WAL و ردیف‌های نام‌دار روی اتصال.

    مثال
    ----
    >>> import sqlite3
    >>> connection = configure_connection(sqlite3.connect(":memory:"))
    >>> connection.execute("PRAGMA foreign_keys;").fetchone()[0]
    1
    """

    conn.row_factory = sqlite3.Row
    _set_pragma(conn, "foreign_keys", "ON")
    _set_pragma(conn, "journal_mode", "WAL")
    _set_pragma(conn, "synchronous", "NORMAL")
    _set_pragma(conn, "busy_timeout", str(int(busy_timeout_ms)))
    return conn


__all__ = ["DEFAULT_BUSY_TIMEOUT_MS", "configure_connection"]
