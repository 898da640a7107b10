"""Domain models for the user registry."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping

# Wire/disk keys for each attribute, in serialisation order.
_FIELD_KEYS = (
    ("id", "id"),
    ("first_name", "firstName"),
    ("last_name", "lastName"),
    ("email", "email"),
    ("phone", "phone"),
    ("address", "address"),
    ("date_of_birth", "dateOfBirth"),
    ("created_at", "createdAt"),
    ("updated_at", "updatedAt"),
)


@dataclass(frozen=True)
class UserRecord:
    """Represents a user entry stored in the registry."""

    id: str
    first_name: str
    last_name: str
    email: str
    created_at: str
    updated_at: str
    phone: str = ""
    address: str = ""
    date_of_birth: str = ""
    extra: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "UserRecord":
        """Create a :class:`UserRecord` from its camelCase representation."""

        values = {attr: data.get(key) for attr, key in _FIELD_KEYS}
        known = {key for _, key in _FIELD_KEYS}
        return UserRecord(
            id=str(values["id"] or ""),
            first_name=str(values["first_name"] or ""),
            last_name=str(values["last_name"] or ""),
            email=str(values["email"] or ""),
            phone=str(values["phone"] or ""),
            address=str(values["address"] or ""),
            date_of_birth=str(values["date_of_birth"] or ""),
            created_at=str(values["created_at"] or ""),
            updated_at=str(values["updated_at"] or ""),
            extra={key: value for key, value in data.items() if key not in known},
        )

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = dict(self.extra)
        for attr, key in _FIELD_KEYS:
            payload[key] = getattr(self, attr)
        return payload


__all__ = ["UserRecord"]
