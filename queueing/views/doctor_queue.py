"""
Doctor dashboard queue endpoints.

A doctor sees and drives only their own queue: the day's ranked list,
the summary counters, the on/off switch, "call next" and explicit
status changes for one entry.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated

from queueing.permissions import IsDoctorRole
from queueing.serializers.queue import EntryStatusSerializer, QueueDateQuerySerializer, QueueToggleSerializer
from queueing.services import availability as availability_service
from queueing.services import ledger
from queueing.services.position import ranked_entries

from .common import ok, polled, query_date


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsDoctorRole])
def queue_status(request):
    return polled(availability_service.queue_status(request.user, query_date(request)))


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsDoctorRole])
def queue_toggle(request):
    s = QueueToggleSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    availability_service.set_queue_active(request.user, s.validated_data['is_active'], operator=request.user)
    return ok(availability_service.queue_status(request.user))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsDoctorRole])
def queue_list(request):
    service_date = query_date(request)
    return polled(ranked_entries(request.user, service_date))


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDoctorRole])
def call_next(request):
    s = QueueDateQuerySerializer(data=request.data)
    s.is_valid(raise_exception=True)
    entry = ledger.call_next(request.user, s.validated_data.get('date'), operator=request.user)
    return ok(ledger.format_entry(entry))


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDoctorRole])
def update_entry_status(request):
    """Move one of the doctor's entries along the state machine.

    Illegal moves come back as 409 ``invalid_transition``; calling while
    another patient is with the doctor is 409 ``conflict``.
    """
    s = EntryStatusSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    entry = ledger.get_entry(vd['entry_id'])
    if entry.doctor_id != request.user.pk:
        raise PermissionDenied('entry belongs to another doctor')
    entry = ledger.set_status(entry.pk, vd['status'], operator=request.user, reason=vd['reason'])
    return ok(ledger.format_entry(entry))


for _view in (queue_toggle, call_next, update_entry_status):
    _view.cls.throttle_scope = 'queue_write'
