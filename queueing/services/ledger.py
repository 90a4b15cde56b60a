"""
Queue ledger: the single write path for queue entries.

Numbers are assigned per ``(doctor, service_date)`` inside a critical
section that locks the day's ``QueueDay`` row, so concurrent check-ins
never share a number and a failed check-in rolls its number back.
Status changes go through the state machine while holding the doctor's
``DoctorAvailability`` row, which keeps at most one entry per doctor
``called`` or ``in_progress``.
"""
from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.db.models import Case, Count, IntegerField, Max, QuerySet, Value, When
from django.utils import timezone

from queueing.exceptions import (
    Conflict,
    DuplicateEntry,
    EmergencySlotsExhausted,
    InvalidTransition,
    NotFound,
    QueueError,
)
from queueing.locks import critical_section, day_key, doctor_key
from queueing.models import (
    ACTIVE_STATUSES,
    OPEN_STATUSES,
    TERMINAL_STATUSES,
    DoctorAvailability,
    EntryStatus,
    PaymentStatus,
    QueueDay,
    QueueEntry,
    QueueEntryTransition,
)
from queueing.services.audit import log_action
from queueing.services.availability import get_availability, resolve_doctor
from queueing.services.state_machine import ensure_transition

logger = logging.getLogger(__name__)

User = get_user_model()


def ordered(qs: QuerySet) -> QuerySet:
    """Apply ledger order: open entries first, emergencies first, then by number."""
    return qs.annotate(
        _terminal=Case(
            When(status__in=TERMINAL_STATUSES, then=Value(1)),
            default=Value(0),
            output_field=IntegerField(),
        )
    ).order_by('_terminal', '-is_emergency', 'queue_number')


def ordering_key(entry: QueueEntry) -> tuple:
    return (entry.is_terminal, not entry.is_emergency, entry.queue_number)


def get_entry(entry_id) -> QueueEntry:
    try:
        entry = QueueEntry.objects.select_related('doctor', 'patient').filter(pk=entry_id).first()
    except (ValidationError, ValueError):
        entry = None
    if entry is None:
        raise NotFound('queue entry not found', entry_id=str(entry_id))
    return entry


def _resolve_patient(patient) -> User:
    if isinstance(patient, User):
        return patient
    user = User.objects.filter(pk=patient).first()
    if user is None:
        raise NotFound('patient not found', patient_id=patient)
    return user


def create_entry(
    doctor,
    patient,
    appointment_id,
    service_date: Optional[date] = None,
    is_emergency: bool = False,
    *,
    reason_for_visit: str = '',
    operator=None,
) -> QueueEntry:
    """Check a patient into a doctor's queue for ``service_date``.

    Raises ``DuplicateEntry`` when the appointment already has an open
    entry with this doctor and ``EmergencySlotsExhausted`` when the
    doctor's emergency slots for the day are used up.  Neither failure
    consumes a queue number.
    """
    doctor = resolve_doctor(doctor)
    patient = _resolve_patient(patient)
    appointment_id = str(appointment_id or '').strip()
    if not appointment_id:
        raise QueueError('appointment id is required')
    service_date = service_date or timezone.localdate()
    availability = get_availability(doctor)

    with critical_section(day_key(doctor.pk, service_date)):
        try:
            with transaction.atomic():
                day, _ = QueueDay.objects.select_for_update().get_or_create(
                    doctor=doctor, service_date=service_date
                )
                day_entries = QueueEntry.objects.filter(doctor=doctor, service_date=service_date)
                if QueueEntry.objects.filter(
                    doctor=doctor, appointment_id=appointment_id, status__in=OPEN_STATUSES
                ).exists():
                    raise DuplicateEntry(
                        'appointment already has an open queue entry', appointment_id=appointment_id
                    )
                if is_emergency:
                    used = day_entries.filter(is_emergency=True).exclude(status=EntryStatus.CANCELLED).count()
                    if used >= availability.max_emergency_slots:
                        raise EmergencySlotsExhausted(
                            'no emergency slots left for this day',
                            max_emergency_slots=availability.max_emergency_slots,
                        )
                current_max = day_entries.aggregate(m=Max('queue_number'))['m'] or 0
                number = max(current_max, day.last_number) + 1
                day.last_number = number
                day.save(update_fields=['last_number'])
                entry = QueueEntry.objects.create(
                    doctor=doctor,
                    patient=patient,
                    appointment_id=appointment_id,
                    service_date=service_date,
                    queue_number=number,
                    is_emergency=bool(is_emergency),
                    reason_for_visit=reason_for_visit or '',
                )
                QueueEntryTransition.objects.create(
                    entry=entry,
                    from_status=None,
                    to_status=EntryStatus.SCHEDULED,
                    operator=operator,
                    reason='check-in',
                )
        except IntegrityError:
            # Another process won the race on the open-entry constraint.
            if QueueEntry.objects.filter(
                doctor=doctor, appointment_id=appointment_id, status__in=OPEN_STATUSES
            ).exists():
                raise DuplicateEntry('appointment already has an open queue entry', appointment_id=appointment_id)
            raise
        except QueueError as exc:
            logger.warning('Check-in rejected for doctor %s appointment %s: %s', doctor.pk, appointment_id, exc.code)
            raise

    logger.info(
        'Checked in patient %s with doctor %s on %s as #%s%s',
        patient.pk, doctor.pk, service_date, entry.queue_number, ' (emergency)' if entry.is_emergency else '',
    )
    log_action(user=operator, action='queue_check_in', object_type='queue_entry', object_id=entry.pk,
               detail={'doctor': doctor.pk, 'number': entry.queue_number, 'emergency': entry.is_emergency})
    return entry


def list_entries(doctor, service_date: Optional[date] = None) -> list[QueueEntry]:
    doctor = resolve_doctor(doctor)
    service_date = service_date or timezone.localdate()
    qs = QueueEntry.objects.filter(doctor=doctor, service_date=service_date).select_related('patient')
    return list(ordered(qs))


def entries_for_patient(patient, service_date: Optional[date] = None, *, include_terminal: bool = False) -> list[QueueEntry]:
    qs = QueueEntry.objects.filter(patient=patient).select_related('doctor')
    if service_date is not None:
        qs = qs.filter(service_date=service_date)
    if not include_terminal:
        qs = qs.filter(status__in=OPEN_STATUSES)
    return list(qs.order_by('service_date', 'queue_number'))


def _apply_transition(
    entry: QueueEntry,
    availability: DoctorAvailability,
    new_status: str,
    *,
    operator=None,
    reason: str = '',
    now: Optional[datetime] = None,
) -> QueueEntry:
    """Move a row-locked entry to ``new_status``.

    Must run inside the doctor's critical section and transaction.
    """
    old_status = str(entry.status)
    new_status = str(new_status)
    ensure_transition(old_status, new_status)
    touch_availability = False
    if new_status == EntryStatus.CALLED:
        if not availability.queue_active:
            raise InvalidTransition('queue is not active', current=old_status, requested=new_status)
        busy = (
            QueueEntry.objects.filter(doctor_id=entry.doctor_id, status__in=ACTIVE_STATUSES)
            .exclude(pk=entry.pk)
            .first()
        )
        if busy is not None:
            raise Conflict('doctor already has an active patient', active_number=busy.queue_number)
        availability.current_number = entry.queue_number
        touch_availability = True
    elif new_status in TERMINAL_STATUSES and old_status in ACTIVE_STATUSES:
        availability.current_number = None
        touch_availability = True

    entry.status = new_status
    entry.status_changed_at = now or timezone.now()
    entry.save(update_fields=['status', 'status_changed_at'])
    if touch_availability:
        availability.save(update_fields=['current_number', 'updated_at'])
    QueueEntryTransition.objects.create(
        entry=entry,
        from_status=old_status,
        to_status=new_status,
        operator=operator,
        reason=reason,
    )
    logger.info('Entry %s (#%s, doctor %s): %s -> %s',
                entry.pk, entry.queue_number, entry.doctor_id, old_status, new_status)
    return entry


def set_status(entry_id, new_status: str, *, operator=None, reason: str = '', now: Optional[datetime] = None) -> QueueEntry:
    entry = get_entry(entry_id)
    get_availability(entry.doctor_id)
    try:
        with critical_section(doctor_key(entry.doctor_id)), transaction.atomic():
            availability = DoctorAvailability.objects.select_for_update().get(doctor_id=entry.doctor_id)
            locked = QueueEntry.objects.select_for_update().get(pk=entry.pk)
            return _apply_transition(locked, availability, new_status, operator=operator, reason=reason, now=now)
    except QueueError as exc:
        logger.warning('Transition of entry %s to %s rejected: %s', entry.pk, new_status, exc.code)
        raise


def call_next(doctor, service_date: Optional[date] = None, *, operator=None, now: Optional[datetime] = None) -> QueueEntry:
    """Call the first scheduled entry of the day in ledger order."""
    doctor = resolve_doctor(doctor)
    service_date = service_date or timezone.localdate()
    get_availability(doctor)
    with critical_section(doctor_key(doctor.pk)), transaction.atomic():
        availability = DoctorAvailability.objects.select_for_update().get(doctor=doctor)
        candidate = ordered(
            QueueEntry.objects.filter(doctor=doctor, service_date=service_date, status=EntryStatus.SCHEDULED)
        ).first()
        if candidate is None:
            raise NotFound('no patients waiting', doctor_id=doctor.pk, service_date=service_date.isoformat())
        locked = QueueEntry.objects.select_for_update().get(pk=candidate.pk)
        return _apply_transition(locked, availability, EntryStatus.CALLED,
                                 operator=operator, reason='call next', now=now)


def record_payment_status(entry_id, payment_status: str, *, operator=None) -> QueueEntry:
    """Write path for the billing system; the queue itself only reads it."""
    if payment_status not in PaymentStatus.values:
        raise QueueError(f'unknown payment status {payment_status!r}')
    entry = get_entry(entry_id)
    QueueEntry.objects.filter(pk=entry.pk).update(payment_status=payment_status)
    entry.payment_status = payment_status
    log_action(user=operator, action='queue_payment_status', object_type='queue_entry',
               object_id=entry.pk, detail={'payment_status': payment_status})
    return entry


def sweep_no_shows(service_date: date, *, operator=None) -> int:
    """Mark every entry still ``scheduled`` on ``service_date`` as ``no_show``."""
    pending = list(
        QueueEntry.objects.filter(service_date=service_date, status=EntryStatus.SCHEDULED)
        .values_list('pk', flat=True)
    )
    swept = 0
    for entry_id in pending:
        try:
            set_status(entry_id, EntryStatus.NO_SHOW, operator=operator, reason='not called by end of day')
        except InvalidTransition:
            # Called or cancelled after the snapshot above.
            continue
        except NotFound as exc:
            # The doctor no longer has the doctor role; leave the entry for an operator.
            logger.warning('Skipped no-show sweep of entry %s: %s', entry_id, exc.message)
            continue
        swept += 1
    if swept:
        logger.info('Marked %s entries from %s as no-show', swept, service_date)
    return swept


def display_number(entry: QueueEntry) -> str:
    return f"E{entry.queue_number}" if entry.is_emergency else str(entry.queue_number)


def format_entry(entry: QueueEntry) -> dict:
    return {
        'entry_id': str(entry.pk),
        'doctor_id': entry.doctor_id,
        'patient_id': entry.patient_id,
        'appointment_id': entry.appointment_id,
        'service_date': entry.service_date.isoformat(),
        'queue_number': entry.queue_number,
        'display_number': display_number(entry),
        'status': entry.status,
        'is_emergency': entry.is_emergency,
        'payment_status': entry.payment_status,
        'reason_for_visit': entry.reason_for_visit,
        'created_at': entry.created_at.isoformat() if entry.created_at else None,
        'status_changed_at': entry.status_changed_at.isoformat() if entry.status_changed_at else None,
    }


def status_counts(service_date: Optional[date] = None, doctor=None) -> dict:
    """Number of entries per status for one day, optionally for one doctor."""
    service_date = service_date or timezone.localdate()
    qs = QueueEntry.objects.filter(service_date=service_date)
    if doctor is not None:
        qs = qs.filter(doctor=resolve_doctor(doctor))
    counts = dict.fromkeys(EntryStatus.values, 0)
    for row in qs.values('status').annotate(n=Count('pk')):
        counts[row['status']] = row['n']
    counts['emergency'] = qs.filter(is_emergency=True).count()
    counts['total'] = sum(counts[s] for s in EntryStatus.values)
    return counts
