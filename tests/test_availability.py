from datetime import date, time

import pytest

from availability import find_conflicts, is_available, search_rooms, validate_window
from exceptions import ErrorCode, ValidationError
from models import Building, Reservation, ReservationStatus, Room, RoomStatus

DAY = date(2024, 5, 1)


def room(room_id="SST-CR1", building=Building.SST, status=RoomStatus.AVAILABLE):
    return Room(id=room_id, building=building, name=room_id, seats=50, status=status)


def booking(start, end, status=ReservationStatus.APPROVED, room_id="SST-CR1", booking_date=DAY, id=1):
    return Reservation(
        id=id,
        requester_id="student-1",
        requester_name="Student User",
        room_id=room_id,
        booking_date=booking_date,
        start_time=start,
        end_time=end,
        status=status,
    )


def test_adjacent_windows_do_not_conflict():
    existing = [booking(time(9), time(10))]

    assert is_available(room(), DAY, time(10), time(11), existing)
    assert is_available(room(), DAY, time(8), time(9), existing)


def test_overlapping_window_conflicts():
    existing = [booking(time(9), time(10))]

    assert not is_available(room(), DAY, time(9, 30), time(10, 30), existing)
    assert not is_available(room(), DAY, time(8), time(12), existing)
    assert not is_available(room(), DAY, time(9, 15), time(9, 45), existing)


def test_non_overlapping_windows_are_each_available():
    first = (time(8), time(9))
    second = (time(13), time(14))

    assert is_available(room(), DAY, *first, [])
    assert is_available(room(), DAY, *second, [booking(*first)])


@pytest.mark.parametrize("status,blocks", [
    (ReservationStatus.PENDING, True),
    (ReservationStatus.APPROVED, True),
    (ReservationStatus.DENIED, False),
])
def test_only_pending_and_approved_block(status, blocks):
    existing = [booking(time(9), time(10), status=status)]

    assert is_available(room(), DAY, time(9), time(10), existing) is not blocks


def test_other_rooms_and_dates_do_not_block():
    existing = [
        booking(time(9), time(10), room_id="SST-CR2"),
        booking(time(9), time(10), booking_date=date(2024, 5, 2), id=2),
    ]

    assert is_available(room(), DAY, time(9), time(10), existing)


def test_unavailable_room_is_never_available():
    assert not is_available(room(status=RoomStatus.UNAVAILABLE), DAY, time(9), time(10), [])


def test_zero_length_window_never_conflicts():
    existing = [booking(time(9), time(10))]

    assert find_conflicts("SST-CR1", DAY, time(9, 30), time(9, 30), existing) == []


def test_find_conflicts_returns_blocking_reservations():
    a = booking(time(9), time(10), id=1)
    b = booking(time(10), time(11), id=2)
    c = booking(time(9), time(12), status=ReservationStatus.DENIED, id=3)

    assert find_conflicts("SST-CR1", DAY, time(9, 30), time(10, 30), [a, b, c]) == [a, b]


@pytest.mark.parametrize("start,end", [
    (time(10), time(10)),
    (time(11), time(10)),
    (time(23), time(1)),
])
def test_validate_window_rejects_empty_and_inverted_windows(start, end):
    with pytest.raises(ValidationError) as exc_info:
        validate_window(start, end)
    assert exc_info.value.code == ErrorCode.INVALID_TIME_WINDOW


def test_validate_window_requires_both_times():
    with pytest.raises(ValidationError) as exc_info:
        validate_window(None, time(10))
    assert exc_info.value.field == "start_time"


def test_search_rooms_filters_by_building():
    rooms = [room("SST-CR1"), room("SST-CR2"), room("TYD-ASABA", building=Building.TYD)]
    existing = [booking(time(9), time(10))]

    results = search_rooms(rooms, DAY, time(9), time(10), existing, building=Building.SST)

    assert [(r.id, ok) for r, ok in results] == [("SST-CR1", False), ("SST-CR2", True)]
