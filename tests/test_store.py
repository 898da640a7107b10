from __future__ import annotations

import json
import os
import stat
from pathlib import Path

import pytest

from user_registry.store import RecordStore, resolve_store_path
from user_registry.users import UserService


@pytest.fixture()
def store(tmp_path: Path) -> RecordStore:
    store = RecordStore(tmp_path / "data" / "users.json")
    store.initialize()
    return store


def test_initialize_creates_directory_and_empty_collection(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "data" / "users.json"
    store = RecordStore(path)

    store.initialize()

    assert path.exists()
    assert json.loads(path.read_text(encoding="utf-8")) == []
    assert store.load_all() == []


def test_initialize_keeps_existing_records(tmp_path: Path) -> None:
    path = tmp_path / "users.json"
    path.write_text(json.dumps([{"id": "abc", "email": "a@b.com"}]), encoding="utf-8")

    RecordStore(path).initialize()

    assert json.loads(path.read_text(encoding="utf-8")) == [{"id": "abc", "email": "a@b.com"}]


def test_save_all_pretty_prints_and_replaces_collection(store: RecordStore) -> None:
    store.save_all([{"id": "1", "email": "one@example.com"}])
    store.save_all([{"id": "2", "email": "two@example.com"}])

    text = store.path.read_text(encoding="utf-8")
    assert text.startswith("[\n  {")
    assert json.loads(text) == [{"id": "2", "email": "two@example.com"}]
    leftovers = [p.name for p in store.path.parent.iterdir() if p.name.endswith(".tmp")]
    assert leftovers == []


def test_load_all_recovers_from_corrupt_file(store: RecordStore) -> None:
    store.path.write_text("{not json", encoding="utf-8")

    assert store.load_all() == []


def test_load_all_treats_non_array_document_as_empty(store: RecordStore) -> None:
    store.path.write_text(json.dumps({"users": []}), encoding="utf-8")

    assert store.load_all() == []


def test_load_all_returns_empty_when_file_missing(tmp_path: Path) -> None:
    assert RecordStore(tmp_path / "missing.json").load_all() == []


def test_save_all_surfaces_write_errors(tmp_path: Path) -> None:
    store = RecordStore(tmp_path / "no-such-dir" / "users.json")

    with pytest.raises(OSError):
        store.save_all([])


def test_resolve_store_path_prefers_explicit_value(tmp_path: Path) -> None:
    explicit = tmp_path / "custom.json"

    assert resolve_store_path(str(explicit)) == explicit.resolve()
    default = resolve_store_path(None)
    assert default.name == "users.json"
    assert default.parent.name == "data"


@pytest.mark.skipif(os.name == "nt", reason="POSIX permission bits")
def test_save_all_keeps_existing_file_mode(store: RecordStore) -> None:
    os.chmod(store.path, 0o640)

    store.save_all([{"id": "1", "email": "one@example.com"}])

    assert stat.S_IMODE(os.stat(store.path).st_mode) == 0o640


@pytest.mark.skipif(os.name == "nt", reason="POSIX permission bits")
def test_initialize_creates_file_with_umask_mode(tmp_path: Path) -> None:
    umask = os.umask(0o022)
    try:
        store = RecordStore(tmp_path / "users.json")
        store.initialize()
    finally:
        os.umask(umask)

    assert stat.S_IMODE(os.stat(store.path).st_mode) == 0o644


def test_non_object_entries_survive_rewrites(tmp_path: Path) -> None:
    path = tmp_path / "users.json"
    record = {
        "id": "x",
        "firstName": "Ada",
        "lastName": "Lovelace",
        "email": "ada@example.com",
        "createdAt": "2024-05-01T12:00:00.000Z",
        "updatedAt": "2024-05-01T12:00:00.000Z",
    }
    path.write_text(json.dumps(["legacy-note", record]), encoding="utf-8")
    store = RecordStore(path)

    assert store.load_all() == [record]
    UserService(store).update_user("x", {"phone": "1"})

    stored = json.loads(path.read_text(encoding="utf-8"))
    assert "legacy-note" in stored
    assert [item["phone"] for item in stored if isinstance(item, dict)] == ["1"]
