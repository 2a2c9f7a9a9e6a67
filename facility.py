"""
Room status board kept by facility staff.

Every operation returns a new Room and leaves its argument alone, so the
store can discard the result if saving fails.
"""

from datetime import datetime
from typing import Dict, Iterable, List, Optional

from exceptions import ValidationError
from models import Building, Room, RoomStatus, UtilityState, clone, default_utilities, utcnow

ROOM_DATA_SOURCE = [
    # SST
    {"id": "SST-CR1", "building": "SST", "name": "CLASSROOM 1", "seats": 50},
    {"id": "SST-CR2", "building": "SST", "name": "CLASSROOM 2", "seats": 50},
    {"id": "SST-CR3", "building": "SST", "name": "CLASSROOM 3", "seats": 50},
    {"id": "SST-CR4", "building": "SST", "name": "CLASSROOM 4", "seats": 50},
    {"id": "SST-LAB-THERMO", "building": "SST", "name": "THERMOFLUID LAB", "seats": 50},
    {"id": "SST-SYN-1", "building": "SST", "name": "SYNDICATE ROOM 1", "seats": 15},
    {"id": "SST-EDS", "building": "SST", "name": "EDS", "seats": 100},
    # TYD
    {"id": "TYD-ASABA", "building": "TYD", "name": "ASABA", "seats": 50},
    {"id": "TYD-ZARIA", "building": "TYD", "name": "ZARIA", "seats": 35},
    {"id": "TYD-IBADAN", "building": "TYD", "name": "IBADAN", "seats": 40},
    {"id": "TYD-MAIDUGURI", "building": "TYD", "name": "MAIDUGURI", "seats": 25},
    {"id": "TYD-ADO", "building": "TYD", "name": "ADO EKITI", "seats": 75},
    {"id": "TYD-PH", "building": "TYD", "name": "PORT HARCOURT", "seats": 75},
    {"id": "TYD-ABUJA", "building": "TYD", "name": "ABUJA", "seats": 150},
]


def seed_rooms() -> List[Room]:
    return [
        Room(
            id=item["id"],
            building=Building(item["building"]),
            name=item["name"],
            seats=item["seats"],
            status=RoomStatus.AVAILABLE,
            utilities=default_utilities(),
            notes=[],
        )
        for item in ROOM_DATA_SOURCE
    ]


def set_status(room: Room, status: RoomStatus) -> Room:
    return clone(room, status=RoomStatus(status))


def toggle_utility(room: Room, name: str) -> Room:
    if name not in room.utilities:
        raise ValidationError(f"room {room.id} has no utility {name!r}", field="utility")
    current = UtilityState(room.utilities[name])
    flipped = UtilityState.FAULTY if current == UtilityState.WORKING else UtilityState.WORKING
    utilities = dict(room.utilities)
    utilities[name] = flipped.value
    return clone(room, utilities=utilities)


def add_note(room: Room, text: str, ts: Optional[datetime] = None) -> Room:
    text = (text or "").strip()
    if not text:
        raise ValidationError("note text is required", field="text")
    ts = ts or utcnow()
    note = {"text": text, "ts": ts.isoformat()}
    return clone(room, notes=[note] + list(room.notes))


def _in_building(rooms: Iterable[Room], building: Optional[Building]) -> List[Room]:
    return [r for r in rooms if building is None or r.building == building]


def status_counts(rooms: Iterable[Room], building: Optional[Building] = None) -> Dict[str, int]:
    counts = {status.value: 0 for status in RoomStatus}
    for room in _in_building(rooms, building):
        counts[RoomStatus(room.status).value] += 1
    return counts


def group_by_building(rooms: Iterable[Room], building: Optional[Building] = None) -> Dict[str, List[Room]]:
    grouped: Dict[str, List[Room]] = {}
    for room in _in_building(rooms, building):
        grouped.setdefault(Building(room.building).value, []).append(room)
    return grouped
