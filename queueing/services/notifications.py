"""
Patient-facing notification state.

``compose`` picks exactly one state for an entry.  Terminal statuses win,
then a visit billing has reported as unpaid, then a paused queue, and
only then the rank.  An entry billing has not reported on yet is not
treated as unpaid.  The text shown to the patient is looked up from the
state by the view layer so it can be translated.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from django.db import models

from queueing.models import EntryStatus, PaymentStatus, QueueEntry
from queueing.services.position import QueuePosition

# Ranks 2..PREPARE_WITHIN get the "prepare" message.
PREPARE_WITHIN = 3


class NotificationState(models.TextChoices):
    BE_READY = 'be_ready', 'Be ready'
    PREPARE = 'prepare', 'Prepare'
    WAITING = 'waiting', 'Waiting'
    PAYMENT_REQUIRED = 'payment_required', 'Payment required'
    QUEUE_NOT_ACTIVE = 'queue_not_active', 'Queue not active'
    COMPLETED = 'completed', 'Completed'
    CURRENT_OR_MISSED = 'current_or_missed', 'Cancelled or missed'


@dataclass(frozen=True)
class Notification:
    state: NotificationState
    rank: Optional[int]

    def as_dict(self) -> dict:
        return {'state': self.state.value, 'rank': self.rank}


def compose_state(status: str, payment_status: Optional[str], rank: Optional[int], queue_active: bool) -> NotificationState:
    status = str(status)
    if status == EntryStatus.COMPLETED:
        return NotificationState.COMPLETED
    if status in (EntryStatus.CANCELLED, EntryStatus.NO_SHOW):
        return NotificationState.CURRENT_OR_MISSED
    if payment_status is not None and str(payment_status) == PaymentStatus.UNPAID:
        return NotificationState.PAYMENT_REQUIRED
    if not queue_active:
        return NotificationState.QUEUE_NOT_ACTIVE
    if rank == 1:
        return NotificationState.BE_READY
    if rank is not None and 2 <= rank <= PREPARE_WITHIN:
        return NotificationState.PREPARE
    return NotificationState.WAITING


def compose(entry: QueueEntry, position: Optional[QueuePosition], queue_active: bool) -> Notification:
    rank = position.rank if position is not None else None
    state = compose_state(entry.status, entry.payment_status, rank, queue_active)
    return Notification(state=state, rank=rank)
