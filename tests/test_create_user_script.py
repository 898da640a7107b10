"""Tests for the command-line user registration helper."""

from __future__ import annotations

import json

from scripts.create_user import main


def test_create_user_writes_record(tmp_path, capsys):
    data_file = tmp_path / "users.json"

    status = main(
        [
            "Ada",
            "Lovelace",
            "ada@example.com",
            "--phone",
            "555-0100",
            "--date-of-birth",
            "1815-12-10",
            "--data-file",
            str(data_file),
        ]
    )

    assert status == 0
    stored = json.loads(data_file.read_text(encoding="utf-8"))
    assert len(stored) == 1
    assert stored[0]["email"] == "ada@example.com"
    assert stored[0]["dateOfBirth"] == "1815-12-10"
    assert stored[0]["address"] == ""
    assert "Created user" in capsys.readouterr().out


def test_create_user_reports_duplicate_email(tmp_path, capsys):
    data_file = tmp_path / "users.json"
    args = ["Ada", "Lovelace", "ada@example.com", "--data-file", str(data_file)]

    assert main(args) == 0
    assert main(args) == 1
    assert "Email already registered" in capsys.readouterr().err
    assert len(json.loads(data_file.read_text(encoding="utf-8"))) == 1
