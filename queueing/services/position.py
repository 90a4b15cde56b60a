"""
Queue position and wait estimates for patients.

A position is always computed from the ledger as it is at read time.
Nothing is cached, so a patient polling the endpoint sees every call,
cancellation and emergency insertion that committed before the poll.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from django.conf import settings
from django.db import transaction
from django.db.models import Q

from queueing.models import OPEN_STATUSES, DoctorAvailability, QueueEntry
from queueing.services.availability import resolve_doctor
from queueing.services.ledger import display_number, get_entry, list_entries


@dataclass(frozen=True)
class QueuePosition:
    entry: QueueEntry
    rank: Optional[int]
    estimated_wait_minutes: Optional[int]
    queue_active: bool

    @property
    def ahead(self) -> Optional[int]:
        return None if self.rank is None else self.rank - 1


def _average_minutes(average_minutes: Optional[int]) -> int:
    if average_minutes is None:
        return settings.QUEUE_AVG_CONSULTATION_MINUTES
    return max(int(average_minutes), 0)


def _wait(rank: Optional[int], queue_active: bool, average_minutes: int) -> Optional[int]:
    if rank is None or not queue_active:
        return None
    return (rank - 1) * average_minutes


def _queue_active(doctor_id) -> bool:
    # Read only; a doctor without an availability row has never opened a queue.
    active = (
        DoctorAvailability.objects.filter(doctor_id=doctor_id).values_list('queue_active', flat=True).first()
    )
    return bool(active)


def _ahead_filter(entry: QueueEntry) -> Q:
    # Emergencies go before every regular entry; within a class, lower numbers first.
    same_class_before = Q(is_emergency=entry.is_emergency, queue_number__lt=entry.queue_number)
    if entry.is_emergency:
        return same_class_before
    return Q(is_emergency=True) | same_class_before


def position(entry_id, average_minutes: Optional[int] = None) -> QueuePosition:
    """Return the rank and estimated wait of one entry.

    Terminal entries have no rank.  The wait is ``None`` while the
    doctor's queue is paused, since nobody is being called.
    """
    minutes = _average_minutes(average_minutes)
    with transaction.atomic():
        entry = get_entry(entry_id)
        queue_active = _queue_active(entry.doctor_id)
        if entry.is_terminal:
            return QueuePosition(entry, None, None, queue_active)
        ahead = (
            QueueEntry.objects.filter(
                doctor_id=entry.doctor_id, service_date=entry.service_date, status__in=OPEN_STATUSES
            )
            .filter(_ahead_filter(entry))
            .count()
        )
    rank = ahead + 1
    return QueuePosition(entry, rank, _wait(rank, queue_active, minutes), queue_active)


def ranked_entries(doctor, service_date: Optional[date] = None, average_minutes: Optional[int] = None) -> list[dict]:
    """Every entry of the day in ledger order with its rank and wait."""
    minutes = _average_minutes(average_minutes)
    with transaction.atomic():
        queue_active = _queue_active(resolve_doctor(doctor).pk)
        entries = list_entries(doctor, service_date)
    rows = []
    rank = 0
    for entry in entries:
        if entry.is_terminal:
            entry_rank = None
        else:
            rank += 1
            entry_rank = rank
        rows.append({
            'entry_id': str(entry.pk),
            'queue_number': entry.queue_number,
            'status': entry.status,
            'display_number': display_number(entry),
            'is_emergency': entry.is_emergency,
            'patient_id': entry.patient_id,
            'payment_status': entry.payment_status,
            'rank': entry_rank,
            'estimated_wait_minutes': _wait(entry_rank, queue_active, minutes),
        })
    return rows
