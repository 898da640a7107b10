"""Flat-file persistence for the user collection."""
from __future__ import annotations

import json
import logging
import os
import stat
import tempfile
from contextlib import suppress
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

logger = logging.getLogger("user_registry.store")


def _ensure_directory(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def resolve_store_path(env_value: Optional[str]) -> Path:
    """Resolve the on-disk path for the user collection."""

    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    base_dir = Path(__file__).resolve().parent.parent / "data"
    return (base_dir / "users.json").resolve(strict=False)


class RecordStore:
    """Whole-collection load/save against a single JSON document."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def initialize(self) -> None:
        """Create the store with an empty collection if it does not exist yet."""

        if self._path.exists():
            return
        _ensure_directory(self._path)
        self._write([])
        logger.info("Created empty user store at %s", self._path)

    def load_all(self) -> List[Dict[str, Any]]:
        """Return every stored record, or an empty list when the file is unreadable."""

        try:
            payload = self._read_document()
        except (OSError, ValueError) as exc:
            logger.warning("Failed to read user store %s: %s", self._path, exc)
            return []

        if not isinstance(payload, list):
            logger.warning("User store %s does not contain a JSON array", self._path)
            return []
        records = [item for item in payload if isinstance(item, dict)]
        if len(records) != len(payload):
            logger.warning(
                "Ignoring %d non-object entries in user store %s",
                len(payload) - len(records),
                self._path,
            )
        return records

    def save_all(self, records: Iterable[Dict[str, Any]]) -> None:
        """Replace the stored records with ``records``.

        Entries that are not JSON objects are never handed out by
        :meth:`load_all`, so they are carried over from the current file and
        written after the records.
        """

        self._write([*records, *self._foreign_entries()])

    def _read_document(self) -> Any:
        with self._path.open("r", encoding="utf-8") as handle:
            return json.load(handle)

    def _foreign_entries(self) -> List[Any]:
        try:
            payload = self._read_document()
        except (OSError, ValueError):
            return []
        if not isinstance(payload, list):
            return []
        return [item for item in payload if not isinstance(item, dict)]

    def _target_mode(self) -> int:
        try:
            return stat.S_IMODE(os.stat(self._path).st_mode)
        except FileNotFoundError:
            umask = os.umask(0)
            os.umask(umask)
            return 0o666 & ~umask

    def _write(self, records: List[Any]) -> None:
        mode = self._target_mode()
        # Write beside the target so os.replace stays on one filesystem.
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self._path.name}.", suffix=".tmp", dir=str(self._path.parent)
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(records, handle, indent=2, ensure_ascii=False)
            # mkstemp creates the file as 0600; keep the store's own mode.
            os.chmod(tmp_name, mode)
            os.replace(tmp_name, self._path)
        except BaseException:
            with suppress(OSError):
                os.unlink(tmp_name)
            raise


__all__ = ["RecordStore", "resolve_store_path"]
