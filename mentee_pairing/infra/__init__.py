"""لایهٔ زیرساختی: ذخیره‌سازی، ورودی/خروجی فایل، لاگ و CLI تخصیص منتی."""

from mentee_pairing.infra.errors import (
    DatabaseOperationError,
    InfraError,
    RosterFileError,
    SchemaVersionMismatchError,
)
from mentee_pairing.infra.sqlite_config import configure_connection

__all__ = [
    "DatabaseOperationError",
    "InfraError",
    "RosterFileError",
    "SchemaVersionMismatchError",
    "configure_connection",
]
