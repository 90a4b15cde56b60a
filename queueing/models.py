"""
Database models for the clinic queue backend.

Two tables carry the queue state: ``queue_entries`` (one row per patient
slot in a doctor's queue for a service day) and ``doctor_availability``
(one row per doctor).  ``queue_days`` holds the per-day number counter
and doubles as the row that is locked while a number is assigned.
Entries are never deleted; they end in a terminal status instead.
"""
from __future__ import annotations

import uuid

from django.conf import settings
from django.contrib.auth.models import AbstractUser
from django.db import models
from django.db.models import Q


class User(AbstractUser):
    """Custom user model with a role.

    Credentials and profiles belong to the wider hospital system; the
    queue only needs to know who is a doctor, who is a patient and who
    may act on their behalf.
    """
    ROLE_PATIENT = 'patient'
    ROLE_DOCTOR = 'doctor'
    ROLE_NURSE = 'nurse'
    ROLE_ADMIN = 'admin'
    ROLE_BILLING = 'billing'
    ROLE_CHOICES = [
        (ROLE_PATIENT, 'Patient'),
        (ROLE_DOCTOR, 'Doctor'),
        (ROLE_NURSE, 'Nurse'),
        (ROLE_ADMIN, 'Administrator'),
        (ROLE_BILLING, 'Billing'),
    ]
    role = models.CharField(max_length=10, choices=ROLE_CHOICES, default=ROLE_PATIENT, db_index=True)

    def __str__(self) -> str:
        return f"{self.username} ({self.role})"


class EntryStatus(models.TextChoices):
    SCHEDULED = 'scheduled', 'Scheduled'
    CALLED = 'called', 'Called'
    IN_PROGRESS = 'in_progress', 'In progress'
    COMPLETED = 'completed', 'Completed'
    CANCELLED = 'cancelled', 'Cancelled'
    NO_SHOW = 'no_show', 'No show'


TERMINAL_STATUSES = frozenset({EntryStatus.COMPLETED.value, EntryStatus.CANCELLED.value, EntryStatus.NO_SHOW.value})
ACTIVE_STATUSES = frozenset({EntryStatus.CALLED.value, EntryStatus.IN_PROGRESS.value})
OPEN_STATUSES = [EntryStatus.SCHEDULED.value, EntryStatus.CALLED.value, EntryStatus.IN_PROGRESS.value]


class PaymentStatus(models.TextChoices):
    UNPAID = 'unpaid', 'Unpaid'
    PARTIALLY_PAID = 'partially_paid', 'Partially paid'
    PAID = 'paid', 'Paid'
    REFUNDED = 'refunded', 'Refunded'


class AvailabilityStatus(models.TextChoices):
    AVAILABLE = 'available', 'Available'
    BUSY = 'busy', 'Busy'
    OFFLINE = 'offline', 'Offline'


def _default_emergency_slots() -> int:
    return settings.QUEUE_MAX_EMERGENCY_SLOTS


class DoctorAvailability(models.Model):
    """Working hours and live status of one doctor.

    ``current_number`` mirrors the queue number of the entry that is
    currently ``called`` or ``in_progress``; it is only written by the
    ledger's state machine.
    """
    doctor = models.OneToOneField(
        settings.AUTH_USER_MODEL, primary_key=True, on_delete=models.CASCADE, related_name='availability'
    )
    status = models.CharField(
        max_length=10, choices=AvailabilityStatus.choices, default=AvailabilityStatus.OFFLINE
    )
    # {"monday": {"start": "09:00", "end": "17:00", "enabled": true}, ...}
    working_hours = models.JSONField(default=dict, blank=True)
    queue_active = models.BooleanField(default=False)
    current_number = models.PositiveIntegerField(null=True, blank=True)
    max_emergency_slots = models.PositiveIntegerField(default=_default_emergency_slots)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'doctor_availability'
        verbose_name_plural = 'doctor availability'

    def __str__(self) -> str:
        return f"{self.doctor_id}: {self.status} (queue {'on' if self.queue_active else 'off'})"


class QueueDay(models.Model):
    """Number counter for one doctor's queue on one service day."""
    doctor = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='queue_days')
    service_date = models.DateField()
    last_number = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'queue_days'
        constraints = [
            models.UniqueConstraint(fields=['doctor', 'service_date'], name='uq_queue_day_per_doctor'),
        ]

    def __str__(self) -> str:
        return f"QueueDay(d={self.doctor_id}, {self.service_date}, last={self.last_number})"


class QueueEntry(models.Model):
    entry_id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    doctor = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='doctor_queue_entries'
    )
    patient = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='queue_entries'
    )
    # Reference into the external appointment system
    appointment_id = models.CharField(max_length=64)
    service_date = models.DateField()
    queue_number = models.PositiveIntegerField()
    is_emergency = models.BooleanField(default=False)
    status = models.CharField(max_length=12, choices=EntryStatus.choices, default=EntryStatus.SCHEDULED)
    # Owned by billing; null until billing has reported anything
    payment_status = models.CharField(
        max_length=16, choices=PaymentStatus.choices, null=True, blank=True, default=None
    )
    reason_for_visit = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    status_changed_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'queue_entries'
        constraints = [
            models.UniqueConstraint(
                fields=['doctor', 'service_date', 'queue_number'], name='uq_queue_number_per_day'
            ),
            models.UniqueConstraint(
                fields=['doctor', 'appointment_id'],
                condition=Q(status__in=OPEN_STATUSES),
                name='uq_open_entry_per_appointment',
            ),
        ]
        indexes = [
            models.Index(fields=['doctor', 'status']),
            models.Index(fields=['patient', 'service_date']),
        ]

    @property
    def is_terminal(self) -> bool:
        return str(self.status) in TERMINAL_STATUSES

    def __str__(self) -> str:
        prefix = 'E' if self.is_emergency else ''
        return f"{prefix}{self.queue_number} d={self.doctor_id} {self.service_date} [{self.status}]"


class QueueEntryTransition(models.Model):
    """Records a status transition for a queue entry."""
    entry = models.ForeignKey(QueueEntry, related_name='transitions', on_delete=models.CASCADE)
    from_status = models.CharField(max_length=12, null=True, blank=True)
    to_status = models.CharField(max_length=12)
    operator = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name='queue_transitions'
    )
    timestamp = models.DateTimeField(auto_now_add=True)
    reason = models.CharField(max_length=255, blank=True)

    def __str__(self) -> str:
        return f"{self.entry_id}: {self.from_status} → {self.to_status}"


class AuditEvent(models.Model):
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.CharField(max_length=64, blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at']),
            models.Index(fields=['object_type', 'object_id', 'created_at']),
        ]

    def __str__(self):
        return f"{self.action}:{self.user_id}@{self.created_at:%F %T}"
