"""Review state machine: PENDING -> APPROVED | DENIED, both terminal."""

import logging
from enum import Enum

from exceptions import InvalidTransitionError, ValidationError
from models import ReservationStatus

logger = logging.getLogger(__name__)


class Decision(str, Enum):
    APPROVE = "approve"
    DENY = "deny"


TRANSITIONS = {
    ReservationStatus.PENDING: {
        Decision.APPROVE: ReservationStatus.APPROVED,
        Decision.DENY: ReservationStatus.DENIED,
    },
}


def initial_status(admin_created: bool) -> ReservationStatus:
    # admin bookings never pass through review
    return ReservationStatus.APPROVED if admin_created else ReservationStatus.PENDING


def is_terminal(status: ReservationStatus) -> bool:
    return status not in TRANSITIONS


def check_transition(current: ReservationStatus, target: ReservationStatus, reservation_id=None) -> None:
    allowed = TRANSITIONS.get(current, {}).values()
    if target not in allowed:
        logger.warning(
            "Rejected transition %s -> %s for reservation %s",
            current.value, target.value, reservation_id,
        )
        raise InvalidTransitionError(current.value, target.value, reservation_id)


def next_status(current: ReservationStatus, decision: Decision, reservation_id=None) -> ReservationStatus:
    try:
        decision = Decision(decision)
    except ValueError:
        raise ValidationError(f"unknown decision {decision!r}", field="decision")

    target = TRANSITIONS[ReservationStatus.PENDING][decision]
    check_transition(current, target, reservation_id)
    return target
