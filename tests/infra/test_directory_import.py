from __future__ import annotations

import itertools
from pathlib import Path

import pandas as pd
import pytest

from mentee_pairing.infra.directory_import import import_allocators_csv, parse_allocator_frame
from mentee_pairing.infra.local_database import LocalDatabase


def _write_csv(path: Path, body: str) -> Path:
    path.write_text(body, encoding="utf-8")
    return path


def test_parse_allocator_frame_splits_names_and_status() -> None:
    frame = pd.DataFrame(
        {
            "Name": ["Kofi Ato Mensah", "Esi Addo", "", "Yaw"],
            "EMAIL": ["Kofi@Uni.edu", "esi@uni.edu", "x@uni.edu", None],
            "Department": ["Computer Engineering", "Computer Engineering", "CE", "CE"],
            "Status": ["active", "Disabled", "active", "active"],
        }
    )
    entries, skipped = parse_allocator_frame(frame)

    assert skipped == 2
    assert entries == [
        ("kofi@uni.edu", "Kofi", "Ato Mensah", "Computer Engineering", True),
        ("esi@uni.edu", "Esi", "Addo", "Computer Engineering", False),
    ]


def test_parse_allocator_frame_requires_name_and_email() -> None:
    with pytest.raises(ValueError, match="email"):
        parse_allocator_frame(pd.DataFrame({"name": ["Kofi"]}))


def test_import_reuses_ids_for_known_emails(local_db: LocalDatabase, tmp_path: Path) -> None:
    ids = itertools.count(1)
    factory = lambda: f"L-{next(ids)}"  # noqa: E731
    first = _write_csv(
        tmp_path / "allocators.csv",
        "name,email,department\nKofi Mensah,kofi@uni.edu,Computer Engineering\n",
    )
    import_allocators_csv(local_db, first, id_factory=factory)

    second = _write_csv(
        tmp_path / "allocators2.csv",
        "name,email,department,status\n"
        "Kofi A. Mensah,KOFI@uni.edu,Computer Engineering,inactive\n"
        "Esi Addo,esi@uni.edu,Computer Engineering,\n"
        ",nobody@uni.edu,Computer Engineering,\n",
    )
    result = import_allocators_csv(local_db, second, id_factory=factory)

    assert (len(result.imported), result.skipped, result.failed) == (2, 1, 0)
    kofi = local_db.find_allocator_by_email("kofi@uni.edu")
    assert kofi is not None
    assert kofi.allocator_id == "L-1"
    assert kofi.family_name == "A. Mensah"
    assert kofi.active is False
    assert local_db.find_allocator_by_email("esi@uni.edu").allocator_id == "L-2"


def test_import_missing_file(local_db: LocalDatabase, tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        import_allocators_csv(local_db, tmp_path / "absent.csv")
