import pytest

from exceptions import InvalidTransitionError, ValidationError
from models import ReservationStatus
from workflow import Decision, check_transition, initial_status, is_terminal, next_status


def test_initial_status():
    assert initial_status(admin_created=False) == ReservationStatus.PENDING
    assert initial_status(admin_created=True) == ReservationStatus.APPROVED


def test_pending_moves_on_decision():
    assert next_status(ReservationStatus.PENDING, Decision.APPROVE) == ReservationStatus.APPROVED
    assert next_status(ReservationStatus.PENDING, "deny") == ReservationStatus.DENIED


@pytest.mark.parametrize("current", [ReservationStatus.APPROVED, ReservationStatus.DENIED])
@pytest.mark.parametrize("decision", list(Decision))
def test_terminal_states_reject_every_decision(current, decision):
    assert is_terminal(current)
    with pytest.raises(InvalidTransitionError):
        next_status(current, decision, reservation_id=7)


def test_pending_is_not_terminal():
    assert not is_terminal(ReservationStatus.PENDING)


def test_cannot_reopen():
    with pytest.raises(InvalidTransitionError) as exc_info:
        check_transition(ReservationStatus.DENIED, ReservationStatus.PENDING)
    assert exc_info.value.details == {"from": "denied", "to": "pending"}


def test_unknown_decision():
    with pytest.raises(ValidationError):
        next_status(ReservationStatus.PENDING, "maybe")
