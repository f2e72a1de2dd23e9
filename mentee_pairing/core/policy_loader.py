"""Policy Loader (Core): سبک، کش‌شونده و بدون وابستگی به Infra.

سیاست تخصیص (شرط فعال‌شدن تخصیص، بازهٔ مجاز نمره و نام‌های مستعار ستون‌های
فایل فهرست دانشجویان) از ``config/policy.json`` خوانده می‌شود. اگر دادهٔ JSON
در Infra خوانده شده باشد، کافی است به :func:`parse_policy_dict` پاس داده شود.
"""

from __future__ import annotations

import json
import warnings
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Dict, Literal, Mapping, Optional, Tuple

VersionMismatchMode = Literal["raise", "warn"]

DEFAULT_POLICY_VERSION = "1.0.0"
DEFAULT_POLICY_PATH = Path("config/policy.json")

# ستون‌های کانونی فهرست دانشجویان که اسکیما می‌شناسد.
ROSTER_FIELDS: Tuple[str, ...] = (
    "external_index",
    "raw_name",
    "score",
    "admission_year",
    "semester",
    "department",
)

_DEFAULT_HEADER_ALIASES: Mapping[str, Tuple[str, ...]] = {
    "external_index": ("indexno", "index_number", "index number", "index no", "index"),
    "raw_name": ("name", "student_name", "student name", "original_name", "full name"),
    "score": ("cwa", "score", "current_cwa"),
    "admission_year": ("admission_year", "year_of_admission", "year_group", "year group"),
    "semester": ("semester", "sem"),
    "department": ("department", "dept"),
}

_DEFAULT_PAYLOAD: Mapping[str, object] = {
    "version": DEFAULT_POLICY_VERSION,
    "trigger": {"first_year": 1, "first_semester": 1},
    "score_bounds": {"minimum": 0, "maximum": 100},
    "header_aliases": {key: list(value) for key, value in _DEFAULT_HEADER_ALIASES.items()},
}


@dataclass(frozen=True)
class TriggerConfig:
    """شرط پیش‌فرض فعال‌شدن تخصیص: «سال اول» و «نیم‌سال اول».

    مثال:
        >>> TriggerConfig(first_year=1, first_semester=1).first_year
        1
    """

    first_year: int
    first_semester: int


@dataclass(frozen=True)
class ScoreBounds:
    """بازهٔ بسته‌ی مجاز برای نمرهٔ عملکرد (CWA)."""

    minimum: float
    maximum: float

    def contains(self, value: float) -> bool:
        return self.minimum <= value <= self.maximum


@dataclass(frozen=True)
class PolicyConfig:
    """ساختار فقط‌خواندنی سیاست بارگذاری‌شده."""

    version: str
    trigger: TriggerConfig
    score_bounds: ScoreBounds
    header_aliases: Mapping[str, Tuple[str, ...]]

    def alias_lookup(self) -> Dict[str, str]:
        """نگاشت نام مستعار (حروف کوچک) به نام کانونی ستون."""

        lookup: Dict[str, str] = {}
        for canonical, aliases in self.header_aliases.items():
            lookup.setdefault(canonical.lower(), canonical)
            for alias in aliases:
                lookup.setdefault(alias.strip().lower(), canonical)
        return lookup


def _ensure_int(name: str, value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ValueError(f"Policy field '{name}' must be an integer")
    try:
        number = float(value)
    except ValueError as exc:
        raise ValueError(f"Policy field '{name}' must be an integer") from exc
    if not number.is_integer():
        raise ValueError(f"Policy field '{name}' must be an integer")
    return int(number)


def _ensure_number(name: str, value: object) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"Policy field '{name}' must be a number")
    return float(value)


def _normalize_trigger(raw: object) -> TriggerConfig:
    if not isinstance(raw, Mapping):
        raise ValueError("Policy field 'trigger' must be an object")
    first_year = _ensure_int("trigger.first_year", raw.get("first_year"))
    first_semester = _ensure_int("trigger.first_semester", raw.get("first_semester"))
    if first_semester < 1:
        raise ValueError("Policy field 'trigger.first_semester' must be >= 1")
    return TriggerConfig(first_year=first_year, first_semester=first_semester)


def _normalize_score_bounds(raw: object) -> ScoreBounds:
    if not isinstance(raw, Mapping):
        raise ValueError("Policy field 'score_bounds' must be an object")
    minimum = _ensure_number("score_bounds.minimum", raw.get("minimum"))
    maximum = _ensure_number("score_bounds.maximum", raw.get("maximum"))
    if minimum > maximum:
        raise ValueError("Policy score_bounds.minimum must not exceed maximum")
    return ScoreBounds(minimum=minimum, maximum=maximum)


def _normalize_header_aliases(raw: object) -> Mapping[str, Tuple[str, ...]]:
    if raw is None:
        return dict(_DEFAULT_HEADER_ALIASES)
    if not isinstance(raw, Mapping):
        raise ValueError("Policy field 'header_aliases' must be an object")
    unknown = sorted(str(key) for key in raw if key not in ROSTER_FIELDS)
    if unknown:
        raise ValueError(f"Unknown roster fields in header_aliases: {unknown}")
    aliases: Dict[str, Tuple[str, ...]] = {}
    for canonical in ROSTER_FIELDS:
        values = raw.get(canonical, _DEFAULT_HEADER_ALIASES[canonical])
        if isinstance(values, str) or not isinstance(values, (list, tuple)):
            raise ValueError(f"header_aliases.{canonical} must be a list of strings")
        aliases[canonical] = tuple(str(item).strip() for item in values if str(item).strip())
    return aliases


def _version_gate(
    version: str, expected: Optional[str], mode: VersionMismatchMode
) -> None:
    if expected is None or version == expected:
        return
    message = f"Policy version mismatch: expected {expected}, got {version}"
    if mode == "warn":
        warnings.warn(message, RuntimeWarning, stacklevel=3)
        return
    raise ValueError(message)


def parse_policy_dict(
    data: Mapping[str, object],
    expected_version: Optional[str] = DEFAULT_POLICY_VERSION,
    on_version_mismatch: VersionMismatchMode = "raise",
) -> PolicyConfig:
    """مسیر خالص برای تبدیل dict به :class:`PolicyConfig`."""

    if not isinstance(data, Mapping):
        raise ValueError("Policy payload must be a JSON object")
    version = str(data.get("version", "")).strip()
    if not version:
        raise ValueError("Policy field 'version' is required")
    _version_gate(version, expected_version, on_version_mismatch)
    return PolicyConfig(
        version=version,
        trigger=_normalize_trigger(data.get("trigger")),
        score_bounds=_normalize_score_bounds(data.get("score_bounds")),
        header_aliases=_normalize_header_aliases(data.get("header_aliases")),
    )


@lru_cache(maxsize=1)
def default_policy() -> PolicyConfig:
    """سیاست پیش‌فرض داخلی، هم‌ارز با ``config/policy.json`` همراه مخزن."""

    return parse_policy_dict(_DEFAULT_PAYLOAD)


@lru_cache(maxsize=8)
def _load_policy_cached(
    resolved_path: str,
    raw: str,
    mtime_ns: int,
    expected_version: Optional[str],
    on_version_mismatch: VersionMismatchMode,
) -> PolicyConfig:
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in policy file: {resolved_path}") from exc
    return parse_policy_dict(data, expected_version, on_version_mismatch)


def load_policy(
    path: str | Path = DEFAULT_POLICY_PATH,
    *,
    expected_version: Optional[str] = DEFAULT_POLICY_VERSION,
    on_version_mismatch: VersionMismatchMode = "raise",
) -> PolicyConfig:
    """بارگذاری سیاست از فایل JSON و بازگشت ساختار کش‌شونده."""

    policy_path = Path(path)
    try:
        raw = policy_path.read_text(encoding="utf-8")
        mtime_ns = policy_path.stat().st_mtime_ns
    except FileNotFoundError as exc:
        raise FileNotFoundError(f"Policy file not found: {policy_path}") from exc

    return _load_policy_cached(
        str(policy_path.resolve()),
        raw,
        mtime_ns,
        expected_version,
        on_version_mismatch,
    )


load_policy.cache_clear = _load_policy_cached.cache_clear  # type: ignore[attr-defined]


__all__ = [
    "DEFAULT_POLICY_PATH",
    "DEFAULT_POLICY_VERSION",
    "ROSTER_FIELDS",
    "PolicyConfig",
    "ScoreBounds",
    "TriggerConfig",
    "default_policy",
    "load_policy",
    "parse_policy_dict",
]
