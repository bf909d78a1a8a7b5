"""Legal status transitions for sessions and rounds.

Session:  waiting → active → completed
          waiting | active → cancelled
Round:    waiting → active → completed
          waiting → cancelled   (session ended before the round was played)

Nothing moves backwards. Guards raise AppError subclasses so the caller can
surface them directly (409 for conflicts).
"""

from src.eg_common.enums import RoundStatus, SessionStatus
from src.eg_common.errors import (
    InvalidTransitionError,
    RoundAlreadyActiveError,
    RoundNotActiveError,
    RoundNotWaitingError,
    SessionNotActiveError,
    SessionNotWaitingError,
)
from src.eg_session.domain.models import Round, Session

SESSION_TRANSITIONS: dict[SessionStatus, frozenset[SessionStatus]] = {
    SessionStatus.WAITING: frozenset({SessionStatus.ACTIVE, SessionStatus.CANCELLED}),
    SessionStatus.ACTIVE: frozenset({SessionStatus.COMPLETED, SessionStatus.CANCELLED}),
    SessionStatus.COMPLETED: frozenset(),
    SessionStatus.CANCELLED: frozenset(),
}

ROUND_TRANSITIONS: dict[RoundStatus, frozenset[RoundStatus]] = {
    RoundStatus.WAITING: frozenset({RoundStatus.ACTIVE, RoundStatus.CANCELLED}),
    RoundStatus.ACTIVE: frozenset({RoundStatus.COMPLETED}),
    RoundStatus.COMPLETED: frozenset(),
    RoundStatus.CANCELLED: frozenset(),
}


def can_transition_session(current: str, target: SessionStatus) -> bool:
    return target in SESSION_TRANSITIONS[SessionStatus(current)]


def can_transition_round(current: str, target: RoundStatus) -> bool:
    return target in ROUND_TRANSITIONS[RoundStatus(current)]


def check_session_transition(session: Session, target: SessionStatus) -> None:
    if not can_transition_session(session.status, target):
        raise InvalidTransitionError("session", session.status, target.value)


def check_round_transition(rnd: Round, target: RoundStatus) -> None:
    if not can_transition_round(rnd.status, target):
        raise InvalidTransitionError("round", rnd.status, target.value)


# ---------------------------------------------------------------------------
# Operation guards
# ---------------------------------------------------------------------------


def check_can_start_session(session: Session) -> None:
    if session.status != SessionStatus.WAITING:
        raise SessionNotWaitingError(session.code, session.status)


def check_session_active(session: Session) -> None:
    if session.status != SessionStatus.ACTIVE:
        raise SessionNotActiveError(session.code, session.status)


def check_can_start_round(session: Session, rnd: Round, rounds: list[Round]) -> None:
    """Session active, target round waiting, and no other round still active."""
    check_session_active(session)
    if rnd.status != RoundStatus.WAITING:
        raise RoundNotWaitingError(rnd.id, rnd.status)
    for other in rounds:
        if other.id != rnd.id and other.status == RoundStatus.ACTIVE:
            raise RoundAlreadyActiveError(session.code, other.round_number)


def check_can_end_round(rnd: Round) -> None:
    if rnd.status != RoundStatus.ACTIVE:
        raise RoundNotActiveError(rnd.id)


def check_accepts_submissions(rnd: Round | None, round_id: str) -> None:
    """Bids, asks and generic actions are only legal while the round is active."""
    if rnd is None or rnd.status != RoundStatus.ACTIVE:
        raise RoundNotActiveError(round_id)


def next_round_number(session: Session, ended_round_number: int) -> int:
    """Pointer value after a round ends: the next playable round, capped at the last."""
    return min(ended_round_number + 1, session.num_rounds)
