"""
Queue error taxonomy and the project-wide API exception handler.

Service functions raise the ``QueueError`` subclasses below; they never
return error codes.  The DRF handler turns them (and DRF's own
exceptions) into the ``{"ok": false, "error": {...}}`` envelope.
"""
import logging

from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


class QueueError(Exception):
    code = 'queue_error'
    http_status = 400

    def __init__(self, message: str = '', **detail):
        super().__init__(message or self.code)
        self.message = message or self.code
        self.detail = detail


class NotFound(QueueError):
    code = 'not_found'
    http_status = 404


class DuplicateEntry(QueueError):
    code = 'duplicate_entry'
    http_status = 409


class InvalidTransition(QueueError):
    code = 'invalid_transition'
    http_status = 409


class Conflict(QueueError):
    code = 'conflict'
    http_status = 409


class EmergencySlotsExhausted(Conflict):
    code = 'emergency_slots_exhausted'


class InvalidSchedule(QueueError):
    code = 'invalid_schedule'
    http_status = 400


def api_exception_handler(exc, context):
    if isinstance(exc, QueueError):
        error = {'code': exc.code, 'message': exc.message}
        if exc.detail:
            error['detail'] = exc.detail
        return Response({'ok': False, 'error': error}, status=exc.http_status)
    resp = drf_exception_handler(exc, context)
    if resp is None:
        logger.exception('Unhandled error in %s', context.get('view'))
        return Response({'ok': False, 'error': {'code': 'server_error', 'message': str(exc)}}, status=500)
    # normalize response
    if isinstance(resp.data, dict):
        detail = resp.data.get('detail') or resp.data
    else:
        detail = resp.data
    return Response({'ok': False, 'error': {'code': 'api_error', 'message': detail}}, status=resp.status_code)
