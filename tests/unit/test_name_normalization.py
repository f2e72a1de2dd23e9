from __future__ import annotations

import pytest

from mentee_pairing.core.common.normalization import (
    compose_student_name,
    normalize_index,
    parse_full_name,
    strip_markers,
    title_case,
)
from mentee_pairing.core.common.types import NameParts


def test_comma_format_splits_family_given_middle() -> None:
    parts = parse_full_name("BOATENG, Delasi Ama (Miss)")
    assert parts == NameParts(given="Delasi", middle="Ama", family="BOATENG")
    assert all("(Miss)" not in field and "Miss" not in field for field in (parts.given, parts.middle, parts.family))


def test_no_comma_first_token_is_given_rest_is_family() -> None:
    assert parse_full_name("Delasi Ama Boateng") == NameParts("Delasi", "", "Ama Boateng")


def test_empty_and_none_inputs_give_empty_parts() -> None:
    assert parse_full_name("") == NameParts("", "", "")
    assert parse_full_name(None) == NameParts("", "", "")
    assert parse_full_name("   (Mr)  ") == NameParts("", "", "")


def test_only_first_comma_is_boundary() -> None:
    parts = parse_full_name("OWUSU, Kwame, Junior")
    assert parts.family == "OWUSU"
    assert parts.given == "Kwame,"
    assert parts.middle == "Junior"


def test_multiple_middle_names_join_with_single_spaces() -> None:
    parts = parse_full_name("ASANTE,   Yaw   Kofi    Nana")
    assert parts == NameParts("Yaw", "Kofi Nana", "ASANTE")


def test_all_parenthetical_groups_are_removed() -> None:
    assert strip_markers("ADDO (Dr) , Esi (Mrs)") == "ADDO , Esi"
    assert parse_full_name("ADDO (Dr), Esi (Mrs)") == NameParts("Esi", "", "ADDO")


def test_unclosed_trailing_marker_is_removed() -> None:
    assert strip_markers("BOATENG, Delasi Ama (Miss") == "BOATENG, Delasi Ama"
    assert parse_full_name("BOATENG, Delasi Ama (Miss") == NameParts("Delasi", "Ama", "BOATENG")
    assert strip_markers("OWUSU (Dr, Ama") == "OWUSU"


def test_comma_without_given_names() -> None:
    assert parse_full_name("MENSAH,") == NameParts("", "", "MENSAH")


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("BOATENG", "Boateng"),
        ("ama BOATENG", "Ama Boateng"),
        ("", ""),
        ("  o'NEIL  ", "O'neil"),
    ],
)
def test_title_case(raw: str, expected: str) -> None:
    assert title_case(raw) == expected


def test_compose_student_name_stores_given_with_middle_and_titled_family() -> None:
    assert compose_student_name("BOATENG, Delasi Ama (Miss)") == ("Delasi Ama", "Boateng")
    assert compose_student_name("Delasi Ama Boateng") == ("Delasi", "Ama Boateng")
    assert compose_student_name(None) == ("", "")


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (1234567.0, "1234567"),
        ("1234567.0", "1234567"),
        (1234567, "1234567"),
        ("  UEB0001 ", "UEB0001"),
        (float("nan"), ""),
        (None, ""),
        ("nan", ""),
        ("", ""),
        (True, ""),
    ],
)
def test_normalize_index(value: object, expected: str) -> None:
    assert normalize_index(value) == expected
