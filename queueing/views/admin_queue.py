"""
Front desk endpoints: check-in, the ranked list and daily counters.

Nurses and administrators check patients in once the appointment has
been confirmed elsewhere; the queue number is assigned here.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from queueing.permissions import IsAdminRole
from queueing.serializers.queue import EntryCreateSerializer, QueueListQuerySerializer
from queueing.services import ledger
from queueing.services.position import ranked_entries

from .common import ok, query_date


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def check_in(request):
    s = EntryCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    entry = ledger.create_entry(
        vd['doctor_id'],
        vd['patient_id'],
        vd['appointment_id'],
        vd.get('service_date'),
        vd['is_emergency'],
        reason_for_visit=vd['reason_for_visit'],
        operator=request.user,
    )
    return Response({'ok': True, 'data': ledger.format_entry(entry)}, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def admin_queue_list(request):
    s = QueueListQuerySerializer(data=request.query_params)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    return ok(ranked_entries(vd['doctor_id'], vd.get('date')))


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def admin_queue_stats(request):
    doctor_id = request.query_params.get('doctor_id') or None
    return ok(ledger.status_counts(query_date(request), doctor_id))


check_in.cls.throttle_scope = 'queue_write'
