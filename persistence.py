"""
Whole-document persistence for the reservation workspace.

``save`` replaces everything that is stored with the given state inside one
transaction; either the whole document lands or nothing does.
"""

import logging

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from exceptions import PersistenceError
from models import ActivityRecord, Reservation, Room, WorkspaceState

logger = logging.getLogger(__name__)


class SQLModelPersistence:
    def __init__(self, engine: Engine):
        self.engine = engine

    def load(self) -> WorkspaceState:
        try:
            with Session(self.engine) as session:
                rooms = session.exec(select(Room).order_by(Room.id)).all()
                # ids are creation-time derived, so id order is insertion order
                reservations = session.exec(select(Reservation).order_by(Reservation.id)).all()
                activity = session.exec(
                    select(ActivityRecord).order_by(ActivityRecord.id.desc())
                ).all()
                session.expunge_all()
        except SQLAlchemyError as exc:
            logger.exception("Loading workspace failed")
            raise PersistenceError("could not load reservations") from exc

        return WorkspaceState(
            rooms=list(rooms),
            reservations=list(reservations),
            activity=list(activity),
        )

    def save(self, state: WorkspaceState) -> None:
        with Session(self.engine) as session:
            try:
                # children first so a foreign-key enforcing backend never sees orphans
                for model, rows in (
                    (ActivityRecord, state.activity),
                    (Reservation, state.reservations),
                    (Room, state.rooms),
                ):
                    keep = {row.id for row in rows}
                    for stored in session.exec(select(model)).all():
                        if stored.id not in keep:
                            session.delete(stored)
                session.flush()

                for row in state.rooms + state.reservations + state.activity:
                    session.merge(row)
                session.commit()
            except SQLAlchemyError as exc:
                session.rollback()
                logger.exception("Saving workspace failed")
                raise PersistenceError("could not save reservations") from exc

        logger.debug(
            "Saved workspace: %d rooms, %d reservations, %d activity records",
            len(state.rooms), len(state.reservations), len(state.activity),
        )
