"""
Persistent audit trail for queue and availability changes.

Status transitions of entries have their own table
(``QueueEntryTransition``); everything else a user does to the queue
(check-ins, toggles, hours, payment updates, logins) lands here.
"""
import logging
from typing import Any, Dict, Optional

from django.contrib.auth import get_user_model

from queueing.models import AuditEvent

logger = logging.getLogger(__name__)

User = get_user_model()


def log_action(
    *,
    user: Optional[User],
    action: str,
    object_type: Optional[str] = None,
    object_id: Optional[Any] = None,
    detail: Optional[Dict[str, Any]] = None,
) -> AuditEvent:
    # Service calls without an operator (commands, tests) are recorded anonymously
    actor = user if isinstance(user, User) and user.pk else None
    event = AuditEvent.objects.create(
        user=actor,
        action=action,
        object_type=object_type,
        object_id=str(object_id) if object_id is not None else None,
        detail=detail or {},
    )
    logger.debug('audit %s %s:%s by %s', action, object_type, object_id, getattr(actor, 'pk', None))
    return event
