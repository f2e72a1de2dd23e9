from __future__ import annotations

import json
from pathlib import Path
from typing import List

import pandas as pd
import pytest

from mentee_pairing.infra import cli
from mentee_pairing.infra.local_database import LocalDatabase

SCORES = [90, 85, 80, 75, 70, 65]


@pytest.fixture
def workspace(tmp_path: Path) -> dict:
    allocators_csv = tmp_path / "allocators.csv"
    allocators_csv.write_text(
        "name,email,department,status\n"
        "Kofi Mensah,kofi@uni.edu,Computer Engineering,active\n"
        "Esi Addo,esi@uni.edu,Computer Engineering,active\n"
        "Yaw Boateng,yaw@uni.edu,Computer Engineering,active\n"
        "Ama Owusu,ama@uni.edu,Physics,active\n",
        encoding="utf-8",
    )
    roster = tmp_path / "roster.csv"
    lines = ["INDEXNO,NAME,CWA"]
    for offset, score in enumerate(SCORES, start=1):
        lines.append(f'100{offset},"STUDENT{offset}, Given (Miss)",{score}')
    roster.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return {
        "db": tmp_path / "pairing.sqlite",
        "allocators": allocators_csv,
        "roster": roster,
        "log_config": tmp_path / "no-logging.yaml",
        "tmp": tmp_path,
    }


def _run(ws: dict, *args: str, runners: dict | None = None) -> int:
    argv: List[str] = ["--log-config", str(ws["log_config"]), *args, "--local-db", str(ws["db"])]
    return cli.main(argv, runners=runners)


def _first_term(ws: dict) -> List[str]:
    return [
        "--roster",
        str(ws["roster"]),
        "--admission-year",
        "1",
        "--semester",
        "1",
        "--department",
        "Computer Engineering",
    ]


def test_full_upload_flow(workspace: dict, capsys: pytest.CaptureFixture[str]) -> None:
    assert _run(workspace, "import-allocators", "--csv", str(workspace["allocators"])) == 0
    assert "allocators imported: 4" in capsys.readouterr().out

    output = workspace["tmp"] / "exports" / "pairings.xlsx"
    code = _run(workspace, "upload", *_first_term(workspace), "--output", str(output), "--json")
    assert code == 0
    report = json.loads(capsys.readouterr().out)
    assert report["studentsUpserted"] == 6
    assert report["pairingsCreated"] == 6
    assert report["message"] == "students + pairings created"
    assert pd.ExcelFile(output, engine="openpyxl").sheet_names == ["pairings", "load"]

    pairings = pd.read_excel(output, sheet_name="pairings", dtype=object)
    assert pairings["allocator_name"].tolist() == [
        "Esi Addo",
        "Kofi Mensah",
        "Yaw Boateng",
        "Yaw Boateng",
        "Kofi Mensah",
        "Esi Addo",
    ]
    assert pairings["student_name"].tolist()[0] == "Given Student1"

    assert _run(workspace, "mentees", "--email", "ESI@uni.edu", "--json") == 0
    mentees = json.loads(capsys.readouterr().out)
    assert [row["index_number"] for row in mentees] == ["1001", "1006"]

    assert _run(workspace, "check-pairings", "--index", "1002", "9999", "--json") == 0
    assert json.loads(capsys.readouterr().out) == {"1002": "Kofi Mensah"}

    assert _run(workspace, "preview", "--roster", str(workspace["roster"]), "--json") == 0
    preview = json.loads(capsys.readouterr().out)
    assert preview["accepted"] == 6
    assert len(preview["alreadyPaired"]) == 6

    runs = LocalDatabase(workspace["db"]).fetch_batch_runs()
    assert len(runs) == 1
    assert runs[0]["entrypoint"] == "upload"


def test_later_semester_upload_is_students_only(workspace: dict, capsys: pytest.CaptureFixture[str]) -> None:
    _run(workspace, "import-allocators", "--csv", str(workspace["allocators"]))
    capsys.readouterr()

    code = _run(
        workspace,
        "upload",
        "--roster",
        str(workspace["roster"]),
        "--admission-year",
        "1",
        "--semester",
        "2",
        "--department",
        "Computer Engineering",
        "--disable-history",
    )

    assert code == 0
    out = capsys.readouterr().out
    assert "students-only update" in out
    db = LocalDatabase(workspace["db"])
    assert len(db.list_students()) == 6
    assert db.list_assignments() == []
    assert db.fetch_batch_runs() == []


def test_required_allocation_without_allocators_exits_2(
    workspace: dict, capsys: pytest.CaptureFixture[str]
) -> None:
    code = _run(
        workspace,
        "upload",
        "--roster",
        str(workspace["roster"]),
        "--admission-year",
        "1",
        "--semester",
        "1",
        "--department",
        "Chemistry",
        "--require-allocation",
    )
    assert code == 2
    assert "Chemistry" in capsys.readouterr().err
    assert len(LocalDatabase(workspace["db"]).list_students()) == 6


def test_missing_roster_and_unknown_email_exit_2(
    workspace: dict, capsys: pytest.CaptureFixture[str]
) -> None:
    assert _run(workspace, "upload", "--roster", str(workspace["tmp"] / "absent.csv")) == 2
    assert "❌" in capsys.readouterr().err

    assert _run(workspace, "mentees", "--email", "nobody@uni.edu") == 2
    assert "nobody@uni.edu" in capsys.readouterr().err


def test_check_pairings_needs_a_source(workspace: dict) -> None:
    with pytest.raises(SystemExit) as excinfo:
        _run(workspace, "check-pairings")
    assert excinfo.value.code == 2


def test_injected_runner_replaces_subcommand(workspace: dict) -> None:
    seen: dict = {}

    def fake_preview(args, policy) -> int:  # type: ignore[no-untyped-def]
        seen["roster"] = args.roster
        seen["version"] = policy.version
        return 0

    assert _run(workspace, "preview", "--roster", "x.csv", runners={"preview": fake_preview}) == 0
    assert seen == {"roster": "x.csv", "version": "1.0.0"}
