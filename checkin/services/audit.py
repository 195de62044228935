from typing import Optional, Any, Dict
from django.contrib.auth import get_user_model
from checkin.models import AuditEvent

User = get_user_model()


def log_action(*, user: Optional[User], action: str, object_type: Optional[str]=None, object_id: Optional[int]=None, detail: Optional[Dict[str, Any]]=None) -> AuditEvent:
    """Append an audit row; anonymous and kiosk callers are stored without a user."""
    return AuditEvent.objects.create(
        user=user if isinstance(user, User) and getattr(user, 'pk', None) else None,
        action=action,
        object_type=object_type, object_id=object_id,
        detail=detail or {},
    )


def session_trail(session_id: int) -> list:
    """Audit entries for one check-in session, oldest first."""
    rows = (
        AuditEvent.objects
        .filter(object_type='checkin_session', object_id=session_id)
        .select_related('user')
        .order_by('created_at', 'id')
    )
    return [
        {
            'action': r.action,
            'by': r.user.username if r.user else '',
            'at': r.created_at.isoformat(),
            'detail': r.detail,
        }
        for r in rows
    ]
