"""
Patient queue endpoints.

Patients poll ``/api/patient/queue/position`` to learn where they stand.
Each entry comes back with its rank, the estimated wait and exactly one
notification whose text is translated here from its state.
"""
from __future__ import annotations

from django.utils import timezone
from django.utils.translation import gettext_lazy as _
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated

from queueing.models import EntryStatus
from queueing.permissions import IsPatientRole
from queueing.serializers.queue import EntryRefSerializer
from queueing.services import availability as availability_service
from queueing.services import ledger
from queueing.services.notifications import Notification, NotificationState, compose
from queueing.services.position import position

from .common import ok, polled, query_date

NOTIFICATION_MESSAGES = {
    NotificationState.BE_READY: _('You are next. Please be ready.'),
    NotificationState.PREPARE: _('You are number %(rank)s in line. Please get ready.'),
    NotificationState.WAITING: _('You are number %(rank)s in line.'),
    NotificationState.PAYMENT_REQUIRED: _('Please complete payment at the counter before your visit.'),
    NotificationState.QUEUE_NOT_ACTIVE: _("The doctor's queue has not started yet."),
    NotificationState.COMPLETED: _('Your visit is complete.'),
    NotificationState.CURRENT_OR_MISSED: _('This queue entry was cancelled or missed.'),
}


def render_notification(notification: Notification) -> dict:
    data = notification.as_dict()
    data['message'] = str(NOTIFICATION_MESSAGES[notification.state]) % {'rank': notification.rank}
    return data


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsPatientRole])
def my_queue_position(request):
    """Positions for the patient's entries on one day (default today)."""
    service_date = query_date(request) or timezone.localdate()
    data = []
    summaries: dict[int, dict] = {}
    for entry in ledger.entries_for_patient(request.user, service_date, include_terminal=True):
        pos = position(entry.pk)
        summary = summaries.get(entry.doctor_id)
        if summary is None:
            summary = summaries[entry.doctor_id] = availability_service.queue_status(entry.doctor_id, service_date)
        doctor = pos.entry.doctor
        item = ledger.format_entry(pos.entry)
        item.update({
            'doctor_name': doctor.get_full_name() or doctor.username,
            'current_number': summary['current_number'],
            'current_emergency_number': summary['current_emergency_number'],
            'rank': pos.rank,
            'estimated_wait_minutes': pos.estimated_wait_minutes,
            'queue_active': pos.queue_active,
            'notification': render_notification(compose(pos.entry, pos, pos.queue_active)),
        })
        data.append(item)
    return polled(data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsPatientRole])
def doctor_queue_summary(request, doctor_id: int):
    """Public counters for one doctor's queue; no patient details."""
    summary = availability_service.queue_status(doctor_id, query_date(request))
    return polled(summary)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsPatientRole])
def cancel_my_entry(request):
    s = EntryRefSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    entry = ledger.get_entry(s.validated_data['entry_id'])
    if entry.patient_id != request.user.pk:
        raise PermissionDenied('entry belongs to another patient')
    entry = ledger.set_status(
        entry.pk, EntryStatus.CANCELLED, operator=request.user, reason=s.validated_data['reason'] or 'cancelled by patient'
    )
    return ok(ledger.format_entry(entry))


cancel_my_entry.cls.throttle_scope = 'queue_write'
