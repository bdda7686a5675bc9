from typing import Any, Dict, Optional

import structlog
from django.contrib.auth import get_user_model

from casework.models import AuditEvent

User = get_user_model()
log = structlog.get_logger(__name__)


def log_action(*, user: Optional[User], action: str, object_type: Optional[str] = None,
               object_id: Any = None, detail: Optional[Dict[str, Any]] = None,
               using: Optional[str] = None) -> AuditEvent:
    event = AuditEvent.objects.using(using or 'default').create(
        user=user if isinstance(user, User) and user.pk else None,
        action=action,
        object_type=object_type,
        object_id=str(object_id) if object_id is not None else None,
        detail=detail or {},
    )
    log.info('audit.' + action, object_type=object_type, object_id=event.object_id,
             user_id=getattr(user, 'pk', None))
    return event
