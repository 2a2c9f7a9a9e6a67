import logging
from datetime import date, time
from pathlib import Path
from typing import Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse
from fastapi.templating import Jinja2Templates
from pydantic import BaseModel

import facility
from config import Settings, configure_logging, get_settings
from database import create_db_and_tables, make_engine
from exceptions import BookingError
from identity import build_identity_provider, get_current_user, get_optional_user, require_roles
from models import Building, Reservation, ReservationDraft, ReservationStatus, Role, Room, RoomStatus, User
from persistence import SQLModelPersistence
from store import ReservationStore
from workflow import Decision

logger = logging.getLogger(__name__)

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))

admin_only = require_roles(Role.ADMIN)
requesters = require_roles(Role.ADMIN, Role.STUDENT, Role.FACULTY)
facility_staff = require_roles(Role.ADMIN, Role.FACILITY)

# the HTML page shows everything for an unknown filter instead of a JSON error
STATUS_FILTERS = {"all"} | {s.value for s in ReservationStatus}


class ReviewRequest(BaseModel):
    decision: Decision
    comment: Optional[str] = None


class RoomStatusRequest(BaseModel):
    status: RoomStatus


class NoteRequest(BaseModel):
    text: str


def get_store(request: Request) -> ReservationStore:
    return request.app.state.store


def reservation_json(r: Reservation) -> dict:
    return {
        "id": r.id,
        "requester_id": r.requester_id,
        "requester_name": r.requester_name,
        "requester_email": r.requester_email,
        "room_id": r.room_id,
        "date": r.booking_date.isoformat(),
        "start_time": r.start_time.strftime("%H:%M"),
        "end_time": r.end_time.strftime("%H:%M"),
        "purpose": r.purpose,
        "status": r.status.value,
        "created_at": r.created_at.isoformat(),
        "created_by": r.created_by,
        "is_admin_created": r.is_admin_created,
        "reviewed_by": r.reviewed_by,
        "reviewed_at": r.reviewed_at.isoformat() if r.reviewed_at else None,
        "review_comment": r.review_comment,
    }


def room_json(room: Room, available: Optional[bool] = None) -> dict:
    data = {
        "id": room.id,
        "building": room.building.value,
        "name": room.name,
        "seats": room.seats,
        "status": room.status.value,
        "utilities": dict(room.utilities),
        "notes": list(room.notes),
    }
    if available is not None:
        data["available"] = available
    return data


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(title=settings.APP_NAME)
    app.state.settings = settings

    @app.on_event("startup")
    def on_startup():
        configure_logging(settings.LOG_LEVEL)
        engine = make_engine(settings.DATABASE_URL)
        create_db_and_tables(engine)

        store = ReservationStore(
            SQLModelPersistence(engine),
            activity_limit=settings.ACTIVITY_LOG_LIMIT,
        )
        store.load()
        if settings.SEED_ROOMS:
            store.seed_rooms(facility.seed_rooms())

        app.state.engine = engine
        app.state.store = store
        app.state.identity_provider = build_identity_provider(settings.IDENTITY_PROVIDER)
        logger.info("%s ready (identity provider: %s)", settings.APP_NAME, settings.IDENTITY_PROVIDER)

    @app.exception_handler(BookingError)
    def booking_error_handler(request: Request, exc: BookingError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        else:
            logger.info("%s %s rejected: %s", request.method, request.url.path, exc)
        return JSONResponse(exc.to_dict(), status_code=exc.status_code)

    register_routes(app)
    return app


def register_routes(app: FastAPI) -> None:

    @app.get("/")
    def dashboard(
        request: Request,
        status: str = Query(default="all"),
        view_date: Optional[date] = Query(default=None),
        building: Optional[Building] = Query(default=None),
        user: Optional[User] = Depends(get_optional_user),
        store: ReservationStore = Depends(get_store),
    ):
        settings = request.app.state.settings
        if status not in STATUS_FILTERS:
            status = "all"
        is_admin = user is not None and user.is_admin
        if is_admin:
            reservations = store.list_by_status(status, booking_date=view_date, building=building)
        elif user is not None:
            reservations = store.list_by_status(status, booking_date=view_date, requester_id=user.id)
        else:
            reservations = []

        return templates.TemplateResponse(request, "dashboard.html", {
            "app_name": settings.APP_NAME,
            "user": user,
            "is_admin": is_admin,
            "stats": store.stats() if is_admin else None,
            "reservations": reservations,
            "recent_activity": store.activity.recent(settings.ACTIVITY_RECENT_DEFAULT) if is_admin else [],
            "grouped_rooms": facility.group_by_building(store.rooms(), building),
            "status_filter": status,
            "view_date": view_date,
        })

    @app.get("/api/me")
    def me(user: User = Depends(get_current_user)):
        return {"ok": True, "user": user.model_dump(mode="json")}

    @app.get("/api/rooms")
    def list_rooms(
        building: Optional[Building] = Query(default=None),
        user: User = Depends(get_current_user),
        store: ReservationStore = Depends(get_store),
    ):
        return {"ok": True, "rooms": [room_json(r) for r in store.rooms(building)]}

    @app.get("/api/availability")
    def check_availability(
        booking_date: date = Query(alias="date"),
        start_time: time = Query(),
        end_time: time = Query(),
        building: Optional[Building] = Query(default=None),
        user: User = Depends(get_current_user),
        store: ReservationStore = Depends(get_store),
    ):
        results = store.search(booking_date, start_time, end_time, building)
        return {
            "ok": True,
            "date": booking_date.isoformat(),
            "rooms": [room_json(room, available) for room, available in results],
        }

    @app.post("/api/reservations", status_code=201)
    def submit_reservation(
        draft: ReservationDraft,
        user: User = Depends(requesters),
        store: ReservationStore = Depends(get_store),
    ):
        if not user.is_admin:
            # requesters always book for themselves
            draft = draft.model_copy(update={
                "requester_id": user.id,
                "requester_name": user.name,
                "requester_email": user.email,
                "admin_created": False,
            })
        else:
            draft = draft.model_copy(update={
                "requester_id": draft.requester_id or user.id,
                "requester_name": draft.requester_name or user.name,
                "requester_email": draft.requester_email or user.email,
            })
        reservation = store.create(draft, user)
        return {"ok": True, "reservation": reservation_json(reservation)}

    @app.get("/api/reservations")
    def list_reservations(
        status: str = Query(default="all"),
        booking_date: Optional[date] = Query(default=None, alias="date"),
        building: Optional[Building] = Query(default=None),
        user: User = Depends(admin_only),
        store: ReservationStore = Depends(get_store),
    ):
        reservations = store.list_by_status(status, booking_date=booking_date, building=building)
        return {"ok": True, "reservations": [reservation_json(r) for r in reservations]}

    @app.get("/api/reservations/mine")
    def my_reservations(
        status: str = Query(default="all"),
        user: User = Depends(get_current_user),
        store: ReservationStore = Depends(get_store),
    ):
        reservations = store.list_by_status(status, requester_id=user.id)
        return {"ok": True, "reservations": [reservation_json(r) for r in reservations]}

    @app.post("/api/reservations/bulk-approve")
    def bulk_approve(
        user: User = Depends(admin_only),
        store: ReservationStore = Depends(get_store),
    ):
        return {"ok": True, "approved": store.bulk_approve(user)}

    @app.post("/api/reservations/{reservation_id}/review")
    def review_reservation(
        reservation_id: int,
        body: ReviewRequest,
        user: User = Depends(admin_only),
        store: ReservationStore = Depends(get_store),
    ):
        reservation = store.review(reservation_id, body.decision, user, body.comment)
        return {"ok": True, "reservation": reservation_json(reservation)}

    @app.delete("/api/reservations/{reservation_id}")
    def delete_reservation(
        reservation_id: int,
        user: User = Depends(admin_only),
        store: ReservationStore = Depends(get_store),
    ):
        return {"ok": True, "deleted": store.delete(reservation_id, user)}

    @app.get("/api/stats")
    def reservation_stats(
        user: User = Depends(admin_only),
        store: ReservationStore = Depends(get_store),
    ):
        return {"ok": True, **store.stats()}

    @app.get("/api/activity")
    def recent_activity(
        request: Request,
        limit: Optional[int] = Query(default=None, ge=1),
        user: User = Depends(admin_only),
        store: ReservationStore = Depends(get_store),
    ):
        limit = limit or request.app.state.settings.ACTIVITY_RECENT_DEFAULT
        return {
            "ok": True,
            "activity": [a.model_dump(mode="json") for a in store.activity.recent(limit)],
        }

    @app.patch("/api/rooms/{room_id}/status")
    def update_room_status(
        room_id: str,
        body: RoomStatusRequest,
        user: User = Depends(facility_staff),
        store: ReservationStore = Depends(get_store),
    ):
        return {"ok": True, "room": room_json(store.set_room_status(room_id, body.status))}

    @app.post("/api/rooms/{room_id}/utilities/{name}/toggle")
    def toggle_room_utility(
        room_id: str,
        name: str,
        user: User = Depends(facility_staff),
        store: ReservationStore = Depends(get_store),
    ):
        return {"ok": True, "room": room_json(store.toggle_utility(room_id, name))}

    @app.post("/api/rooms/{room_id}/notes", status_code=201)
    def add_room_note(
        room_id: str,
        body: NoteRequest,
        user: User = Depends(facility_staff),
        store: ReservationStore = Depends(get_store),
    ):
        return {"ok": True, "room": room_json(store.add_room_note(room_id, body.text))}

    @app.get("/api/facility/summary")
    def facility_summary(
        building: Optional[Building] = Query(default=None),
        user: User = Depends(facility_staff),
        store: ReservationStore = Depends(get_store),
    ):
        rooms = store.rooms()
        grouped = facility.group_by_building(rooms, building)
        return {
            "ok": True,
            "counts": facility.status_counts(rooms, building),
            "buildings": {name: [room_json(r) for r in members] for name, members in grouped.items()},
        }


app = create_app()
