# -*- coding: utf-8 -*-
"""
A compact, side-effect free name normalization helper for roster rows.

Public API:
- parse_full_name(raw: Any) -> NameParts
- title_case(text: str) -> str
- compose_student_name(raw: Any) -> tuple[str, str]
- normalize_index(value: Any) -> str

Design notes:
- Deterministic; performs no I/O and emits no log records.
- Parenthetical markers such as "(Miss)" are removed before parsing and never
  reach any output field.
- Only the first comma splits family name from the given names.
"""
from __future__ import annotations

import math
import re
from typing import Any, Tuple

from .types import NameParts

__all__ = [
    "strip_markers",
    "parse_full_name",
    "title_case",
    "compose_student_name",
    "normalize_index",
]

# Parenthetical groups with surrounding whitespace; an unclosed group runs to the end.
_RE_PARENTHETICAL = re.compile(r"\s*\([^)]*(?:\)|$)\s*")

# Collapse any whitespace run to a single space.
_RE_WHITESPACE = re.compile(r"\s+")

# Integral float rendering produced by spreadsheets, e.g. "1234567.0".
_RE_INTEGRAL_FLOAT = re.compile(r"^(-?\d+)\.0+$")


def _as_text(value: Any) -> str:
    """Return ``value`` as text; None and NaN-like values become ``""``."""

    if value is None:
        return ""
    if isinstance(value, float) and not math.isfinite(value):
        return ""
    return str(value)


def strip_markers(text: str) -> str:
    """Remove parenthetical marker text and collapse whitespace.

    >>> strip_markers("BOATENG, Delasi Ama (Miss)")
    'BOATENG, Delasi Ama'
    """

    without = _RE_PARENTHETICAL.sub(" ", text)
    return _RE_WHITESPACE.sub(" ", without).strip()


def parse_full_name(raw: Any) -> NameParts:
    """Split a raw full name into given, middle and family parts.

    ``"FAMILY, Given Middle (Marker)"`` keeps the left of the first comma as the
    family name. Without a comma the first token is the given name and the rest
    is the family name.

    >>> parse_full_name("BOATENG, Delasi Ama (Miss)")
    NameParts(given='Delasi', middle='Ama', family='BOATENG')
    >>> parse_full_name("Delasi Ama Boateng")
    NameParts(given='Delasi', middle='', family='Ama Boateng')
    >>> parse_full_name("")
    NameParts(given='', middle='', family='')
    """

    cleaned = strip_markers(_as_text(raw))
    family_part, comma, rest = cleaned.partition(",")
    if comma:
        tokens = rest.split()
        given = tokens[0] if tokens else ""
        return NameParts(given=given, middle=" ".join(tokens[1:]), family=family_part.strip())

    tokens = cleaned.split()
    if not tokens:
        return NameParts(given="", middle="", family="")
    return NameParts(given=tokens[0], middle="", family=" ".join(tokens[1:]))


def title_case(text: str) -> str:
    """Capitalize the first letter of each whitespace token, lowercase the rest.

    >>> title_case("AMA BOATENG-MENSAH")
    'Ama Boateng-mensah'
    """

    return " ".join(token[:1].upper() + token[1:].lower() for token in text.split())


def compose_student_name(raw: Any) -> Tuple[str, str]:
    """Return ``(given_name, family_name)`` in the shape stored for a student.

    The given name carries the middle names; the family name is title-cased.

    >>> compose_student_name("BOATENG, Delasi Ama (Miss)")
    ('Delasi Ama', 'Boateng')
    """

    parts = parse_full_name(raw)
    given = " ".join(token for token in (parts.given, parts.middle) if token)
    return given, title_case(parts.family)


def normalize_index(value: Any) -> str:
    """Canonical text of an external index; ``""`` when absent.

    >>> normalize_index(1234567.0)
    '1234567'
    >>> normalize_index("  UEB0001 ")
    'UEB0001'
    """

    if isinstance(value, bool):
        return ""
    if isinstance(value, float):
        if not math.isfinite(value):
            return ""
        if value.is_integer():
            return str(int(value))
    text = _as_text(value).strip()
    match = _RE_INTEGRAL_FLOAT.match(text)
    if match:
        return match.group(1)
    if text.lower() in {"nan", "none", "null"}:
        return ""
    return text
