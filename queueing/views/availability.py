"""
Doctor-side availability endpoints: live status and weekly hours.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated

from queueing.permissions import IsDoctorRole
from queueing.serializers.queue import AvailabilityStatusSerializer, WorkingHoursSerializer
from queueing.services import availability as availability_service

from .common import ok


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsDoctorRole])
def my_availability(request):
    availability = availability_service.get_availability(request.user)
    data = availability_service.format_availability(availability)
    data['within_working_hours'] = availability_service.is_within_working_hours(request.user)
    return ok(data)


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsDoctorRole])
def update_availability_status(request):
    s = AvailabilityStatusSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    availability = availability_service.set_status(request.user, s.validated_data['status'], operator=request.user)
    return ok(availability_service.format_availability(availability))


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsDoctorRole])
def update_working_hours(request):
    s = WorkingHoursSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    availability = availability_service.set_working_hours(
        request.user, s.validated_data['working_hours'], operator=request.user
    )
    return ok(availability_service.format_availability(availability))
