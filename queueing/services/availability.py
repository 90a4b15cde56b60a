"""
Doctor availability: live status, weekly working hours and the queue
on/off switch.

Availability rows are created lazily with ``offline`` status and the
queue paused.  Changing the status or the working hours never touches
queue entries; pausing the queue only blocks future calls.
"""
from __future__ import annotations

import logging
from datetime import date, datetime, time
from typing import Any, Optional

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Count, Q
from django.utils import timezone

from queueing.exceptions import InvalidSchedule, NotFound, QueueError
from queueing.locks import critical_section, doctor_key
from queueing.models import (
    ACTIVE_STATUSES,
    AvailabilityStatus,
    DoctorAvailability,
    EntryStatus,
    QueueEntry,
)
from queueing.services.audit import log_action

logger = logging.getLogger(__name__)

User = get_user_model()

WEEKDAYS = ('monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday')


def resolve_doctor(doctor) -> User:
    """Return the doctor user for ``doctor`` (a user or a primary key)."""
    if isinstance(doctor, User):
        user = doctor
    else:
        try:
            user = User.objects.filter(pk=doctor).first()
        except (TypeError, ValueError):
            user = None
    if user is None or getattr(user, 'role', None) != User.ROLE_DOCTOR:
        raise NotFound('doctor not found', doctor_id=getattr(user, 'pk', doctor))
    return user


def get_availability(doctor) -> DoctorAvailability:
    doctor = resolve_doctor(doctor)
    availability, created = DoctorAvailability.objects.get_or_create(doctor=doctor)
    if created:
        logger.info('Created availability for doctor %s', doctor.pk)
    return availability


def _parse_hhmm(value: Any, *, day: str, field: str) -> time:
    try:
        return datetime.strptime(str(value), '%H:%M').time()
    except (TypeError, ValueError):
        raise InvalidSchedule(f'{day}: {field} must be HH:MM', day=day, field=field, value=value)


def normalize_working_hours(hours: Any) -> dict:
    """Validate a weekday → ``{start, end, enabled}`` mapping.

    Weekday names are case-insensitive and stored lower-case.  Every
    enabled day needs a well-formed ``start`` strictly before ``end``;
    disabled days are stored as given.
    """
    if not isinstance(hours, dict):
        raise InvalidSchedule('working hours must be a mapping of weekday to hours')
    cleaned: dict[str, dict] = {}
    for raw_day, slot in hours.items():
        day = str(raw_day).strip().lower()
        if day not in WEEKDAYS:
            raise InvalidSchedule(f'unknown weekday {raw_day!r}', day=raw_day)
        if not isinstance(slot, dict):
            raise InvalidSchedule(f'{day}: hours must be an object', day=day)
        enabled = bool(slot.get('enabled', True))
        start = slot.get('start') or ''
        end = slot.get('end') or ''
        if enabled:
            if _parse_hhmm(start, day=day, field='start') >= _parse_hhmm(end, day=day, field='end'):
                raise InvalidSchedule(f'{day}: start must be before end', day=day, start=start, end=end)
        cleaned[day] = {'start': start, 'end': end, 'enabled': enabled}
    return cleaned


def set_status(doctor, status: str, *, operator=None) -> DoctorAvailability:
    if status not in AvailabilityStatus.values:
        raise QueueError(f'unknown availability status {status!r}')
    availability = get_availability(doctor)
    availability.status = status
    availability.save(update_fields=['status', 'updated_at'])
    logger.info('Doctor %s is now %s', availability.doctor_id, status)
    log_action(user=operator, action='availability_status', object_type='doctor',
               object_id=availability.doctor_id, detail={'status': status})
    return availability


def set_working_hours(doctor, hours: Any, *, operator=None) -> DoctorAvailability:
    try:
        cleaned = normalize_working_hours(hours)
    except InvalidSchedule as exc:
        logger.warning('Rejected working hours for doctor %s: %s', getattr(doctor, 'pk', doctor), exc.message)
        raise
    availability = get_availability(doctor)
    availability.working_hours = cleaned
    availability.save(update_fields=['working_hours', 'updated_at'])
    log_action(user=operator, action='working_hours', object_type='doctor',
               object_id=availability.doctor_id, detail={'days': sorted(cleaned)})
    return availability


def set_queue_active(doctor, active: bool, *, operator=None) -> DoctorAvailability:
    """Open or pause the doctor's queue.

    Serialized with call transitions so a pause is never overtaken by a
    call that started before it.  Entries already called keep going.
    """
    doctor = resolve_doctor(doctor)
    get_availability(doctor)
    with critical_section(doctor_key(doctor.pk)), transaction.atomic():
        availability = DoctorAvailability.objects.select_for_update().get(doctor=doctor)
        availability.queue_active = bool(active)
        availability.save(update_fields=['queue_active', 'updated_at'])
    logger.info('Queue for doctor %s %s', doctor.pk, 'opened' if active else 'paused')
    log_action(user=operator, action='queue_toggle', object_type='doctor',
               object_id=doctor.pk, detail={'active': bool(active)})
    return availability


def hours_for_day(availability: DoctorAvailability, day: date) -> Optional[dict]:
    slot = (availability.working_hours or {}).get(WEEKDAYS[day.weekday()])
    if not slot or not slot.get('enabled'):
        return None
    return slot


def is_within_working_hours(doctor, at: Optional[datetime] = None) -> bool:
    availability = get_availability(doctor)
    at = timezone.localtime(at or timezone.now())
    slot = hours_for_day(availability, at.date())
    if slot is None:
        return False
    start = _parse_hhmm(slot['start'], day=WEEKDAYS[at.weekday()], field='start')
    end = _parse_hhmm(slot['end'], day=WEEKDAYS[at.weekday()], field='end')
    return start <= at.time() < end


def queue_status(doctor, service_date: Optional[date] = None) -> dict:
    """Summary of one doctor's queue for the doctor dashboard."""
    service_date = service_date or timezone.localdate()
    availability = get_availability(doctor)
    counts = QueueEntry.objects.filter(doctor_id=availability.doctor_id, service_date=service_date).aggregate(
        emergency_used=Count('pk', filter=Q(is_emergency=True) & ~Q(status=EntryStatus.CANCELLED)),
        regular_count=Count('pk', filter=Q(is_emergency=False) & ~Q(status=EntryStatus.CANCELLED)),
        waiting_count=Count('pk', filter=Q(status=EntryStatus.SCHEDULED)),
    )
    current = (
        QueueEntry.objects.filter(doctor_id=availability.doctor_id, status__in=ACTIVE_STATUSES)
        .only('queue_number', 'is_emergency')
        .first()
    )
    slot = hours_for_day(availability, service_date)
    return {
        'doctor_id': availability.doctor_id,
        'queue_date': service_date.isoformat(),
        'current_number': availability.current_number,
        'current_emergency_number': current.queue_number if current and current.is_emergency else None,
        'max_emergency_slots': availability.max_emergency_slots,
        'emergency_used': counts['emergency_used'],
        'regular_count': counts['regular_count'],
        'waiting_count': counts['waiting_count'],
        'available_from': slot['start'] if slot else None,
        'available_to': slot['end'] if slot else None,
        'is_active': availability.queue_active,
        'availability_status': availability.status,
    }


def format_availability(availability: DoctorAvailability) -> dict:
    return {
        'doctor_id': availability.doctor_id,
        'status': availability.status,
        'working_hours': availability.working_hours,
        'queue_active': availability.queue_active,
        'current_number': availability.current_number,
        'max_emergency_slots': availability.max_emergency_slots,
        'updated_at': availability.updated_at.isoformat() if availability.updated_at else None,
    }
