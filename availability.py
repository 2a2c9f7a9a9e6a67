"""
Room availability.

Windows are half-open [start, end) on a single calendar date, so a booking
ending at 10:00 never blocks one starting at 10:00. Denied reservations
never block anything.
"""

from datetime import date, time
from typing import Iterable, List, Optional, Tuple

from exceptions import ErrorCode, ValidationError
from models import Building, Reservation, ReservationStatus, Room, RoomStatus

BLOCKING_STATUSES = (ReservationStatus.PENDING, ReservationStatus.APPROVED)


def validate_window(start_time: Optional[time], end_time: Optional[time]) -> None:
    if start_time is None or end_time is None:
        raise ValidationError(
            "start and end time are required",
            field="start_time" if start_time is None else "end_time",
            code=ErrorCode.MISSING_REQUIRED_FIELD,
        )
    # also rejects windows that cross midnight
    if end_time <= start_time:
        raise ValidationError(
            "end time must be after start time",
            field="end_time",
            code=ErrorCode.INVALID_TIME_WINDOW,
        )


def overlaps(start_a: time, end_a: time, start_b: time, end_b: time) -> bool:
    return start_a < end_b and start_b < end_a


def find_conflicts(
    room_id: str,
    booking_date: date,
    start_time: time,
    end_time: time,
    reservations: Iterable[Reservation],
) -> List[Reservation]:
    if start_time >= end_time:
        return []
    return [
        r for r in reservations
        if r.room_id == room_id
        and r.booking_date == booking_date
        and r.status in BLOCKING_STATUSES
        and overlaps(start_time, end_time, r.start_time, r.end_time)
    ]


def is_available(
    room: Room,
    booking_date: date,
    start_time: time,
    end_time: time,
    reservations: Iterable[Reservation],
) -> bool:
    if room.status != RoomStatus.AVAILABLE:
        return False
    return not find_conflicts(room.id, booking_date, start_time, end_time, reservations)


def search_rooms(
    rooms: Iterable[Room],
    booking_date: date,
    start_time: time,
    end_time: time,
    reservations: Iterable[Reservation],
    building: Optional[Building] = None,
) -> List[Tuple[Room, bool]]:
    validate_window(start_time, end_time)
    reservations = list(reservations)
    return [
        (room, is_available(room, booking_date, start_time, end_time, reservations))
        for room in rooms
        if building is None or room.building == building
    ]
