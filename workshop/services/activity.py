"""Append-only audit trail of mutating actions."""

import logging
from typing import Any, Dict, Optional

from workshop.models import ActivityLog

logger = logging.getLogger(__name__)


def log_activity(
    actor,
    action: str,
    resource: str,
    resource_id: Optional[str],
    description: str,
    details: Optional[Dict[str, Any]] = None,
    ip_address: Optional[str] = None,
) -> Optional[ActivityLog]:
    """
    Record an activity entry. Best-effort: a failure is logged and swallowed
    so the calling workflow is never affected.
    """
    try:
        return ActivityLog.objects.create(
            user_id=getattr(actor, 'user_id', None),
            user_name=getattr(actor, 'user_name', None),
            user_role=getattr(actor, 'user_role', None),
            action=action,
            resource=resource,
            resource_id=str(resource_id) if resource_id is not None else None,
            description=description,
            details=details,
            ip_address=ip_address,
        )
    except Exception as e:
        logger.warning(f"Failed to write activity log ({action} {resource} {resource_id}): {e}")
        return None
