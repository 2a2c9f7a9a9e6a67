"""
Reservation store.

Holds the workspace (rooms, reservations, activity) in memory and writes it
through a persistence collaborator after every mutation. A mutation builds
the next state from copies, saves it, and only then replaces the current
state, so a failed save leaves nothing half-applied.
"""

import logging
import threading
from datetime import datetime
from typing import Callable, Dict, List, Optional, Union

import availability
import facility
import workflow
from activity import ActivityLog, make_record
from exceptions import ConflictError, ErrorCode, NotFoundError, PersistenceError, ValidationError
from models import (
    ActivityAction,
    Building,
    Reservation,
    ReservationDraft,
    ReservationStatus,
    Room,
    RoomStatus,
    User,
    WorkspaceState,
    clone,
    time_based_id,
    utcnow,
)

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("room_id", "booking_date", "start_time", "end_time", "requester_id")

ALL = "all"


class ReservationStore:
    def __init__(
        self,
        persistence,
        activity_limit: int = 50,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.persistence = persistence
        self.clock = clock
        self.activity = ActivityLog(limit=activity_limit)
        self._rooms: Dict[str, Room] = {}
        self._reservations: List[Reservation] = []
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # loading / saving
    # ------------------------------------------------------------------

    def load(self) -> None:
        state = self.persistence.load()
        with self._lock:
            self._rooms = {room.id: room for room in state.rooms}
            self._reservations = list(state.reservations)
            self.activity = ActivityLog(state.activity, limit=self.activity.limit)
        logger.info(
            "Loaded %d rooms, %d reservations, %d activity records",
            len(self._rooms), len(self._reservations), len(self.activity),
        )

    def seed_rooms(self, rooms: List[Room]) -> int:
        """Adds rooms that are not stored yet; returns how many were added."""
        with self._lock:
            missing = [r for r in rooms if r.id not in self._rooms]
            if not missing:
                return 0
            next_rooms = dict(self._rooms)
            next_rooms.update({r.id: r for r in missing})
            self._commit(rooms=next_rooms)
        logger.info("Seeded %d rooms", len(missing))
        return len(missing)

    def _commit(
        self,
        reservations: Optional[List[Reservation]] = None,
        rooms: Optional[Dict[str, Room]] = None,
        activity: Optional[ActivityLog] = None,
    ) -> None:
        next_reservations = self._reservations if reservations is None else reservations
        next_rooms = self._rooms if rooms is None else rooms
        next_activity = self.activity if activity is None else activity

        state = WorkspaceState(
            rooms=list(next_rooms.values()),
            reservations=list(next_reservations),
            activity=next_activity.entries(),
        )
        try:
            self.persistence.save(state)
        except PersistenceError:
            raise
        except Exception as exc:
            logger.exception("Persistence collaborator failed")
            raise PersistenceError("could not save reservations") from exc

        self._reservations = list(next_reservations)
        self._rooms = next_rooms
        self.activity = next_activity

    def _log(self, actor: Optional[User], action: ActivityAction, description: str,
             reservation_id: Optional[int] = None) -> ActivityLog:
        """Next activity log with one more record; the current log if that fails."""
        try:
            log = self.activity.copy()
            log.append(make_record(actor, action, description, reservation_id, self.clock()))
            return log
        except Exception:
            logger.exception("Could not record %s activity; continuing without it", action.value)
            return self.activity

    # ------------------------------------------------------------------
    # queries
    # ------------------------------------------------------------------

    def rooms(self, building: Optional[Building] = None) -> List[Room]:
        return [r for r in self._rooms.values() if building is None or r.building == building]

    def get_room(self, room_id: str) -> Room:
        room = self._rooms.get(room_id)
        if room is None:
            raise NotFoundError("Room", room_id)
        return room

    def get(self, reservation_id: int) -> Reservation:
        for reservation in self._reservations:
            if reservation.id == reservation_id:
                return reservation
        raise NotFoundError("Reservation", reservation_id)

    def list_by_status(
        self,
        status: Union[ReservationStatus, str] = ALL,
        booking_date=None,
        building: Optional[Building] = None,
        requester_id: Optional[str] = None,
    ) -> List[Reservation]:
        if status != ALL:
            try:
                status = ReservationStatus(status)
            except ValueError:
                raise ValidationError(f"unknown status {status!r}", field="status")

        result = []
        for r in self._reservations:
            if status != ALL and r.status != status:
                continue
            if booking_date is not None and r.booking_date != booking_date:
                continue
            if requester_id is not None and r.requester_id != requester_id:
                continue
            if building is not None:
                room = self._rooms.get(r.room_id)
                if room is None or room.building != building:
                    continue
            result.append(r)
        return result

    def stats(self) -> Dict[str, int]:
        counts = {status.value: 0 for status in ReservationStatus}
        for r in self._reservations:
            counts[r.status.value] += 1
        counts["total"] = len(self._reservations)
        return counts

    def search(self, booking_date, start_time, end_time, building: Optional[Building] = None):
        return availability.search_rooms(
            self._rooms.values(), booking_date, start_time, end_time, self._reservations, building
        )

    # ------------------------------------------------------------------
    # reservation mutations
    # ------------------------------------------------------------------

    def _validate(self, draft: ReservationDraft) -> None:
        for name in REQUIRED_FIELDS:
            value = getattr(draft, name)
            if value is None or (isinstance(value, str) and not value.strip()):
                raise ValidationError(
                    f"{name} is required", field=name, code=ErrorCode.MISSING_REQUIRED_FIELD
                )
        availability.validate_window(draft.start_time, draft.end_time)

    def create(self, draft: ReservationDraft, actor: User) -> Reservation:
        admin_created = bool(draft.admin_created and actor.is_admin)
        self._validate(draft)

        with self._lock:
            room = self.get_room(draft.room_id)
            if not admin_created and not availability.is_available(
                room, draft.booking_date, draft.start_time, draft.end_time, self._reservations
            ):
                conflicts = availability.find_conflicts(
                    room.id, draft.booking_date, draft.start_time, draft.end_time, self._reservations
                )
                logger.info("Rejected reservation for %s on %s: unavailable", room.id, draft.booking_date)
                raise ConflictError(
                    f"{room.name} is not available for the requested time",
                    code=ErrorCode.BOOKING_CONFLICT if conflicts else ErrorCode.ROOM_UNAVAILABLE,
                    details={
                        "room_id": room.id,
                        "conflicting_ids": [c.id for c in conflicts],
                    },
                )

            now = self.clock()
            last_id = max((r.id for r in self._reservations), default=None)
            reservation = Reservation(
                id=time_based_id(last_id),
                requester_id=draft.requester_id,
                requester_name=draft.requester_name or draft.requester_id,
                requester_email=draft.requester_email,
                room_id=room.id,
                booking_date=draft.booking_date,
                start_time=draft.start_time,
                end_time=draft.end_time,
                purpose=draft.purpose or "",
                status=workflow.initial_status(admin_created),
                created_at=now,
                created_by=actor.id,
                is_admin_created=admin_created,
            )
            if admin_created:
                reservation.reviewed_by = actor.id
                reservation.reviewed_at = now

            activity = self.activity
            if admin_created:
                activity = self._log(
                    actor, ActivityAction.CREATED, f"Created reservation for {room.name}", reservation.id
                )
            self._commit(reservations=self._reservations + [reservation], activity=activity)

        logger.info(
            "Reservation %s created for %s on %s %s-%s (%s)",
            reservation.id, room.id, reservation.booking_date,
            reservation.start_time, reservation.end_time, reservation.status.value,
        )
        return reservation

    def transition(
        self,
        reservation_id: int,
        new_status: ReservationStatus,
        reviewer: User,
        comment: Optional[str] = None,
    ) -> Reservation:
        try:
            new_status = ReservationStatus(new_status)
        except ValueError:
            raise ValidationError(f"unknown status {new_status!r}", field="status")
        with self._lock:
            current = self.get(reservation_id)
            workflow.check_transition(current.status, new_status, reservation_id)

            updated = clone(
                current,
                status=new_status,
                reviewed_by=reviewer.id,
                reviewed_at=self.clock(),
                review_comment=comment,
            )
            reservations = [updated if r.id == reservation_id else r for r in self._reservations]

            room = self._rooms.get(current.room_id)
            room_name = room.name if room else current.room_id
            action = ActivityAction.APPROVED if new_status == ReservationStatus.APPROVED else ActivityAction.DENIED
            verb = "Approved" if action == ActivityAction.APPROVED else "Denied"
            activity = self._log(reviewer, action, f"{verb} reservation for {room_name}", reservation_id)

            self._commit(reservations=reservations, activity=activity)

        logger.info("Reservation %s %s by %s", reservation_id, new_status.value, reviewer.id)
        return updated

    def review(self, reservation_id: int, decision, reviewer: User, comment: Optional[str] = None) -> Reservation:
        current = self.get(reservation_id)
        target = workflow.next_status(current.status, decision, reservation_id)
        return self.transition(reservation_id, target, reviewer, comment)

    def bulk_approve(self, reviewer: User) -> int:
        with self._lock:
            pending = [r for r in self._reservations if r.status == ReservationStatus.PENDING]
            if not pending:
                return 0

            reviewed_at = self.clock()
            reservations = [
                clone(r, status=ReservationStatus.APPROVED, reviewed_by=reviewer.id, reviewed_at=reviewed_at)
                if r.status == ReservationStatus.PENDING else r
                for r in self._reservations
            ]
            activity = self._log(
                reviewer, ActivityAction.BULK_APPROVED, f"Bulk approved {len(pending)} reservations"
            )
            self._commit(reservations=reservations, activity=activity)

        logger.info("Bulk approved %d reservations by %s", len(pending), reviewer.id)
        return len(pending)

    def delete(self, reservation_id: int, actor: Optional[User] = None) -> bool:
        with self._lock:
            target = next((r for r in self._reservations if r.id == reservation_id), None)
            if target is None:
                return False

            room = self._rooms.get(target.room_id)
            room_name = room.name if room else target.room_id
            activity = self._log(actor, ActivityAction.DELETED, f"Deleted reservation for {room_name}", reservation_id)
            self._commit(
                reservations=[r for r in self._reservations if r.id != reservation_id],
                activity=activity,
            )

        logger.info("Reservation %s deleted", reservation_id)
        return True

    # ------------------------------------------------------------------
    # facility board
    # ------------------------------------------------------------------

    def _replace_room(self, room: Room) -> Room:
        rooms = dict(self._rooms)
        rooms[room.id] = room
        self._commit(rooms=rooms)
        return room

    def set_room_status(self, room_id: str, status: RoomStatus) -> Room:
        with self._lock:
            room = self._replace_room(facility.set_status(self.get_room(room_id), status))
        logger.info("Room %s marked %s", room_id, room.status.value)
        return room

    def toggle_utility(self, room_id: str, name: str) -> Room:
        with self._lock:
            room = self._replace_room(facility.toggle_utility(self.get_room(room_id), name))
        logger.info("Room %s %s is now %s", room_id, name, room.utilities[name])
        return room

    def add_room_note(self, room_id: str, text: str) -> Room:
        with self._lock:
            return self._replace_room(facility.add_note(self.get_room(room_id), text, self.clock()))
