from __future__ import annotations

import re
from pathlib import Path

CORE_DIR = Path(__file__).resolve().parents[2] / "mentee_pairing" / "core"
FORBIDDEN_IO = re.compile(r"(read_excel|to_excel|ExcelWriter|read_csv|to_csv|sqlite3|open\()")


def test_core_modules_do_not_import_logging() -> None:
    offenders: list[Path] = []
    for path in CORE_DIR.rglob("*.py"):
        text = path.read_text(encoding="utf-8")
        if "logging." in text or "import logging" in text:
            offenders.append(path)
    assert not offenders, f"logging usage found in core modules: {offenders}"


def test_core_has_no_io_patterns() -> None:
    offenders: list[str] = []
    for py_file in CORE_DIR.rglob("*.py"):
        text = py_file.read_text(encoding="utf-8")
        match = FORBIDDEN_IO.search(text)
        if match:
            offenders.append(f"{py_file.relative_to(CORE_DIR)} -> {match.group(1)}")
    assert not offenders, "Forbidden I/O patterns detected in core: " + ", ".join(offenders)


def test_core_does_not_depend_on_infra() -> None:
    offenders = [
        str(path.relative_to(CORE_DIR))
        for path in CORE_DIR.rglob("*.py")
        if "mentee_pairing.infra" in path.read_text(encoding="utf-8")
    ]
    assert not offenders, f"core imports infra: {offenders}"
