import json

import pytest

from main import _parse_args, main


def test_default_command_invokes_serve() -> None:
    args = _parse_args([])
    assert args.command == "serve"


def test_default_command_accepts_options_without_subcommand() -> None:
    args = _parse_args(["--host", "127.0.0.1", "--port", "8080"])
    assert args.command == "serve"
    assert args.host == "127.0.0.1"
    assert args.port == 8080


def test_list_users_subcommand_available() -> None:
    args = _parse_args(["list-users", "--service-url", "http://localhost:3000"])
    assert args.command == "list-users"
    assert args.service_url == "http://localhost:3000"


def test_init_store_creates_data_file(tmp_path, monkeypatch, capsys) -> None:
    monkeypatch.delenv("USER_REGISTRY_CONFIG", raising=False)
    data_file = tmp_path / "data" / "users.json"

    main(["init-store", "--data-file", str(data_file)])

    assert json.loads(data_file.read_text(encoding="utf-8")) == []
    assert str(data_file) in capsys.readouterr().out


def test_list_users_prints_local_records(tmp_path, monkeypatch, capsys) -> None:
    monkeypatch.delenv("USER_REGISTRY_CONFIG", raising=False)
    data_file = tmp_path / "users.json"
    data_file.write_text(
        json.dumps(
            [
                {
                    "id": "1b4e28ba-2fa1-11d2-883f-0016d3cca427",
                    "firstName": "Ada",
                    "lastName": "Lovelace",
                    "email": "ada@example.com",
                    "createdAt": "2024-05-01T12:00:00.000Z",
                }
            ]
        ),
        encoding="utf-8",
    )

    with pytest.raises(SystemExit) as excinfo:
        main(["list-users", "--data-file", str(data_file)])

    assert excinfo.value.code == 0
    output = capsys.readouterr().out
    assert "1 user(s) found" in output
    assert "Ada Lovelace" in output
    assert "ada@example.com" in output


def test_init_store_failure_exits_with_status_one(tmp_path, monkeypatch) -> None:
    monkeypatch.delenv("USER_REGISTRY_CONFIG", raising=False)
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")

    with pytest.raises(SystemExit) as excinfo:
        main(["init-store", "--data-file", str(blocker / "users.json")])

    assert excinfo.value.code == 1


def test_unknown_log_level_exits_with_configuration_error(tmp_path, monkeypatch) -> None:
    monkeypatch.delenv("USER_REGISTRY_CONFIG", raising=False)
    monkeypatch.setenv("USER_REGISTRY_LOG_LEVEL", "verbose")
    data_file = tmp_path / "users.json"

    with pytest.raises(SystemExit) as excinfo:
        main(["init-store", "--data-file", str(data_file)])

    assert "Invalid configuration" in str(excinfo.value.code)
    assert "verbose" in str(excinfo.value.code)
    assert not data_file.exists()
