"""
Domain models for overtime-sync.

Records and users travel as camelCase JSON arrays between devices, the local
cache, and the remote blob store. Models accept both the wire names and the
Python attribute names, and keep unknown fields so a document written by a
newer client survives a round-trip through this one.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel


class Status(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class Role(str, Enum):
    COORDINATOR = "COORDINATOR"
    SUPERVISOR = "SUPERVISOR"
    EMPLOYEE = "EMPLOYEE"


class Location(str, Enum):
    GUARUJA = "Guarujá"
    SANTOS = "Santos"


_WIRE_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    frozen=True,
    extra="allow",
)


class RecordDraft(BaseModel):
    """
    Business fields an employee fills in when submitting overtime.
    """

    coordinator: str = ""
    supervisor: str = ""
    employee: str = ""
    start_date: str
    start_time: str
    end_date: str
    end_time: str
    location: str = Location.SANTOS.value
    reason: str = ""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class Record(BaseModel):
    """
    A single overtime record.

    ``id`` and ``created_at`` are assigned by the submitting device and never
    change; ``status`` is the only field mutated after creation.
    """

    id: str = Field(..., min_length=1, description="Client-generated merge key.")
    created_at: int = Field(..., description="Epoch milliseconds; the ordering key.")
    status: Status = Field(Status.PENDING, description="Approval lifecycle state.")
    owner_username: str = Field("", description="Username of the submitting user.")
    coordinator: str = ""
    supervisor: str = ""
    employee: str = ""
    start_date: str = ""
    end_date: str = ""
    start_time: str = ""
    end_time: str = ""
    location: str = ""
    reason: str = ""
    duration_minutes: int = 0

    model_config = _WIRE_CONFIG

    def with_status(self, status: Status) -> "Record":
        return self.model_copy(update={"status": status})

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class User(BaseModel):
    username: str = Field(..., min_length=1)
    password: Optional[str] = None
    name: str = ""
    role: Role = Role.EMPLOYEE
    supervisor_name: Optional[str] = None

    model_config = _WIRE_CONFIG

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


class RemoteConfig(BaseModel):
    """Shape of the remote ``config`` document."""

    google_sheet_url: Optional[str] = None

    model_config = _WIRE_CONFIG


_RECORDS = TypeAdapter(List[Record])
_USERS = TypeAdapter(List[User])


def parse_records(data: Any) -> List[Record]:
    """
    Validate a decoded JSON array into records.

    Raises
    ------
    pydantic.ValidationError
        If the payload is not a list of record objects.
    """
    return _RECORDS.validate_python(data)


def dump_records(records: Iterable[Record]) -> List[dict[str, Any]]:
    return [record.to_wire() for record in records]


def parse_users(data: Any) -> List[User]:
    return _USERS.validate_python(data)


def dump_users(users: Iterable[User]) -> List[dict[str, Any]]:
    return [user.to_wire() for user in users]


__all__ = [
    "Location",
    "Record",
    "RecordDraft",
    "RemoteConfig",
    "Role",
    "Status",
    "User",
    "dump_records",
    "dump_users",
    "parse_records",
    "parse_users",
]
