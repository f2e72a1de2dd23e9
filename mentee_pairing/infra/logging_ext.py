"""ابزارک‌های Logging مرحله‌ای برای Coordinator و CLI."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from logging import Logger
from time import perf_counter
from typing import Iterator

__all__ = ["log_step", "StepLogger"]


def _describe(step: str, fields: dict[str, object]) -> str:
    """``allocate`` یا ``allocate[department=CE]`` برای پیام لاگ.

    >>> _describe("allocate", {"department": "CE", "rows": None})
    'allocate[department=CE]'
    """

    extras = ", ".join(f"{key}={value}" for key, value in fields.items() if value is not None)
    return f"{step}[{extras}]" if extras else step


@contextmanager
def log_step(logger: Logger, step: str, **fields: object) -> Iterator[None]:
    """ثبت شروع، پایان و مدت مرحله؛ خطا با استک‌تریس لاگ و دوباره پرتاب می‌شود."""

    label = _describe(step, fields)
    start = perf_counter()
    logger.info("step %s started", label)
    try:
        yield
    except Exception:
        logger.exception("step %s failed after %.3fs", label, perf_counter() - start)
        raise
    logger.info("step %s finished in %.3fs", label, perf_counter() - start)


@dataclass(slots=True)
class StepLogger:
    """گام‌های یک فرایند با پیشوند ثابت، مثل ``batch.ingest`` و ``batch.persist``."""

    logger: Logger
    prefix: str = ""

    @contextmanager
    def step(self, name: str, **fields: object) -> Iterator[None]:
        label = f"{self.prefix}.{name}" if self.prefix else name
        with log_step(self.logger, label, **fields):
            yield
