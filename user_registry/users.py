"""CRUD operations over the user collection."""
from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional

from .models import UserRecord
from .store import RecordStore

logger = logging.getLogger("user_registry.users")

REQUIRED_FIELDS = ("first_name", "last_name", "email")
OPTIONAL_FIELDS = ("phone", "address", "date_of_birth")
MUTABLE_FIELDS = REQUIRED_FIELDS + OPTIONAL_FIELDS

REQUIRED_FIELDS_MESSAGE = "First name, last name, and email are required"
DUPLICATE_EMAIL_MESSAGE = "Email already registered"
NOT_FOUND_MESSAGE = "User not found"


class UserServiceError(Exception):
    """Base class for errors reported back to API callers."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class UserValidationError(UserServiceError):
    """Raised when submitted fields are missing or conflict with stored users."""

    status_code = 400


class UserNotFoundError(UserServiceError):
    """Raised when no user matches the requested identifier."""

    status_code = 404

    def __init__(self, message: str = NOT_FOUND_MESSAGE) -> None:
        super().__init__(message)


def _current_timestamp() -> datetime:
    return datetime.now(timezone.utc)


def _serialize_datetime(value: datetime) -> str:
    text = value.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


def _parse_datetime(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _generate_id() -> str:
    return str(uuid.uuid4())


def _clean(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


class UserService:
    """Runs each operation as a load, mutate, save cycle against the store.

    Nothing is cached between calls: every operation reads the whole
    collection afresh and, for writes, replaces it in full.
    """

    def __init__(
        self,
        store: RecordStore,
        *,
        clock: Optional[Callable[[], datetime]] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ) -> None:
        self._store = store
        self._clock = clock or _current_timestamp
        self._id_factory = id_factory or _generate_id

    @property
    def store(self) -> RecordStore:
        return self._store

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def list_users(self) -> List[UserRecord]:
        return self._load()

    def get_user(self, user_id: str) -> UserRecord:
        for record in self._load():
            if record.id == user_id:
                return record
        raise UserNotFoundError()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def create_user(self, fields: Mapping[str, Any]) -> UserRecord:
        """Validate ``fields`` and append a new user to the collection."""

        values = {name: _clean(fields.get(name)) for name in MUTABLE_FIELDS}
        if not all(values[name] for name in REQUIRED_FIELDS):
            raise UserValidationError(REQUIRED_FIELDS_MESSAGE)

        records = self._load()
        if any(record.email == values["email"] for record in records):
            raise UserValidationError(DUPLICATE_EMAIL_MESSAGE)

        existing_ids = {record.id for record in records}
        user_id = self._id_factory()
        while user_id in existing_ids:
            user_id = self._id_factory()

        timestamp = _serialize_datetime(self._clock())
        user = UserRecord(
            id=user_id,
            created_at=timestamp,
            updated_at=timestamp,
            **values,
        )
        records.append(user)
        self._save(records)
        logger.info("Created user %s <%s>", user.id, user.email)
        return user

    def update_user(self, user_id: str, fields: Mapping[str, Any]) -> UserRecord:
        """Apply ``fields`` to an existing user.

        Required fields keep their previous value when the submitted value is
        missing or blank. Optional fields are replaced whenever their key is
        present in ``fields``, so an empty string clears them.
        """

        records = self._load()
        index = self._find_index(records, user_id)
        current = records[index]

        email = _clean(fields.get("email"))
        if email and email != current.email:
            if any(record.email == email and record.id != user_id for record in records):
                raise UserValidationError(DUPLICATE_EMAIL_MESSAGE)

        changes: Dict[str, Any] = {}
        for name in REQUIRED_FIELDS:
            value = _clean(fields.get(name))
            if value:
                changes[name] = value
        for name in OPTIONAL_FIELDS:
            if name in fields:
                changes[name] = _clean(fields[name])
        changes["updated_at"] = self._refreshed_timestamp(current.updated_at)

        updated = replace(current, **changes)
        records[index] = updated
        self._save(records)
        logger.info("Updated user %s", user_id)
        return updated

    def delete_user(self, user_id: str) -> UserRecord:
        records = self._load()
        index = self._find_index(records, user_id)
        deleted = records.pop(index)
        self._save(records)
        logger.info("Deleted user %s", user_id)
        return deleted

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _load(self) -> List[UserRecord]:
        return [UserRecord.from_dict(item) for item in self._store.load_all()]

    def _save(self, records: List[UserRecord]) -> None:
        self._store.save_all(record.to_dict() for record in records)

    @staticmethod
    def _find_index(records: List[UserRecord], user_id: str) -> int:
        for index, record in enumerate(records):
            if record.id == user_id:
                return index
        raise UserNotFoundError()

    def _refreshed_timestamp(self, previous: str) -> str:
        now = self._clock()
        now = now.replace(microsecond=now.microsecond // 1000 * 1000)
        try:
            last = _parse_datetime(previous) if previous else None
        except ValueError:
            last = None
        # Millisecond resolution: keep successive updates strictly ordered.
        if last is not None and now <= last:
            now = last + timedelta(milliseconds=1)
        return _serialize_datetime(now)


__all__ = [
    "UserService",
    "UserServiceError",
    "UserValidationError",
    "UserNotFoundError",
    "MUTABLE_FIELDS",
]
