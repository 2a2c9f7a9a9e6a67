import copy
import time as time_module
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel
from sqlalchemy import JSON, Column, DateTime, TypeDecorator
from sqlmodel import Field, SQLModel


class Building(str, Enum):
    SST = "SST"
    TYD = "TYD"


class RoomStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    UNAVAILABLE = "UNAVAILABLE"


class UtilityState(str, Enum):
    WORKING = "WORKING"
    FAULTY = "FAULTY"


class ReservationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"


class ActivityAction(str, Enum):
    CREATED = "created"
    APPROVED = "approved"
    DENIED = "denied"
    DELETED = "deleted"
    BULK_APPROVED = "bulk_approved"


class Role(str, Enum):
    ADMIN = "admin"
    STUDENT = "student"
    FACULTY = "faculty"
    FACILITY = "facility"


UTILITY_NAMES = ("projector", "ac", "power")


def default_utilities() -> Dict[str, str]:
    return {name: UtilityState.WORKING.value for name in UTILITY_NAMES}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware datetime column.

    Values are stored as naive UTC (SQLite has no timezone support) and come
    back aware, so a reloaded timestamp compares equal to the one saved.
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError("datetime values must carry timezone information")
        return value.astimezone(timezone.utc).replace(tzinfo=None)

    def process_result_value(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is None:
            return None
        return value.replace(tzinfo=timezone.utc)


class Room(SQLModel, table=True):
    id: str = Field(primary_key=True)
    building: Building
    name: str
    seats: int
    status: RoomStatus = Field(default=RoomStatus.AVAILABLE)
    utilities: Dict[str, str] = Field(default_factory=default_utilities, sa_column=Column(JSON))
    # newest first: [{"text": ..., "ts": ...}]
    notes: List[Dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON))


class Reservation(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    requester_id: str = Field(index=True)
    requester_name: str
    requester_email: Optional[str] = None

    room_id: str = Field(foreign_key="room.id", index=True)
    booking_date: date = Field(index=True)
    start_time: time
    end_time: time
    purpose: str = ""

    status: ReservationStatus = Field(default=ReservationStatus.PENDING)
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(UTCDateTime, nullable=False))
    created_by: Optional[str] = None
    is_admin_created: bool = False

    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = Field(default=None, sa_column=Column(UTCDateTime, nullable=True))
    review_comment: Optional[str] = None


class ActivityRecord(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    timestamp: datetime = Field(default_factory=utcnow, sa_column=Column(UTCDateTime, nullable=False))
    user: str = "Admin"
    user_id: Optional[str] = None
    action: ActivityAction
    type: str = "reservation"
    description: str = ""
    reservation_id: Optional[int] = None


class User(BaseModel):
    id: str
    name: str
    email: Optional[str] = None
    role: Role
    active: bool = True

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


class ReservationDraft(BaseModel):
    """What a requester (or an admin on their behalf) submits.

    Every field is optional here so that missing values reach the store and
    come back as a ValidationError naming the field.
    """

    room_id: Optional[str] = None
    booking_date: Optional[date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    purpose: Optional[str] = None
    requester_id: Optional[str] = None
    requester_name: Optional[str] = None
    requester_email: Optional[str] = None
    admin_created: bool = False


@dataclass
class WorkspaceState:
    """The whole persisted document: rooms, reservations and activity."""

    rooms: List[Room] = field(default_factory=list)
    reservations: List[Reservation] = field(default_factory=list)
    activity: List[ActivityRecord] = field(default_factory=list)


def time_based_id(after: Optional[int] = None) -> int:
    """Millisecond timestamp, bumped past ``after`` so ids stay unique and ordered."""
    candidate = int(time_module.time() * 1000)
    if after is not None and candidate <= after:
        candidate = after + 1
    return candidate


def clone(instance: SQLModel, **changes) -> SQLModel:
    """Detached copy of a table model with ``changes`` applied."""
    data = copy.deepcopy(instance.model_dump())
    data.update(changes)
    return type(instance)(**data)
