from __future__ import annotations

from queueing.exceptions import InvalidTransition
from queueing.models import EntryStatus

S = EntryStatus

TRANSITIONS: dict[str, frozenset[str]] = {
    S.SCHEDULED.value: frozenset({S.CALLED.value, S.CANCELLED.value, S.NO_SHOW.value}),
    S.CALLED.value: frozenset({S.IN_PROGRESS.value, S.CANCELLED.value}),
    S.IN_PROGRESS.value: frozenset({S.COMPLETED.value, S.CANCELLED.value}),
    S.COMPLETED.value: frozenset(),
    S.CANCELLED.value: frozenset(),
    S.NO_SHOW.value: frozenset(),
}


def can_transition(current: str, new: str) -> bool:
    """Return True if a queue entry may move from ``current`` to ``new``."""
    return new in TRANSITIONS.get(current, frozenset())


def ensure_transition(current: str, new: str) -> None:
    current, new = str(current), str(new)
    if new not in TRANSITIONS:
        raise InvalidTransition(f'unknown status {new!r}', current=current, requested=new)
    if not can_transition(current, new):
        raise InvalidTransition(f'cannot move from {current} to {new}', current=current, requested=new)
