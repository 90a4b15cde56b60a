"""Small helpers shared by the queue views."""
from __future__ import annotations

from django.conf import settings
from rest_framework.response import Response

from queueing.serializers.queue import QueueDateQuerySerializer


def query_date(request):
    """Return the ``?date=YYYY-MM-DD`` query parameter, or None for today."""
    s = QueueDateQuerySerializer(data=request.query_params)
    s.is_valid(raise_exception=True)
    return s.validated_data.get('date')


def ok(data, **extra) -> Response:
    payload = {'ok': True, 'data': data}
    payload.update(extra)
    return Response(payload)


def polled(data, **extra) -> Response:
    """Success response carrying the client refresh interval."""
    return ok(data, poll_interval_seconds=settings.QUEUE_POLL_INTERVAL_SECONDS, **extra)
