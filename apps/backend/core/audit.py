from __future__ import annotations

import logging
from typing import Any

from .models import AuditEvent

logger = logging.getLogger(__name__)


def _request_context(request) -> dict[str, str]:
    if request is None:
        return {"path": "", "method": "", "ip_address": "", "user_agent": ""}
    meta = getattr(request, "META", {}) or {}
    return {
        "path": getattr(request, "path", "")[:255],
        "method": getattr(request, "method", "")[:16],
        "ip_address": meta.get("REMOTE_ADDR", "")[:64],
        "user_agent": meta.get("HTTP_USER_AGENT", "")[:255],
    }


def create_audit_event(
    *,
    action: str,
    entity_type: str,
    entity_id: str | int | None = None,
    from_status: str = "",
    to_status: str = "",
    status: str = AuditEvent.STATUS_SUCCESS,
    message: str = "",
    metadata: dict[str, Any] | None = None,
    user=None,
    request=None,
) -> AuditEvent:
    """Persist one audit row for an action taken on a register entity.

    The acting user is taken from ``user`` or, failing that, from the request;
    anonymous users are stored as ``None``.
    """
    actor = user or getattr(request, "user", None)
    if actor is not None and not getattr(actor, "is_authenticated", False):
        actor = None

    event = AuditEvent.objects.create(
        user=actor,
        action=action,
        entity_type=entity_type,
        entity_id="" if entity_id is None else str(entity_id),
        from_status=from_status or "",
        to_status=to_status or "",
        status=status,
        message=message,
        metadata=metadata or {},
        **_request_context(request),
    )
    logger.debug("audit %s %s:%s", action, entity_type, event.entity_id)
    return event


def purge_audit_events(*, days: int, action_prefix: str = "", dry_run: bool = False) -> int:
    """Delete (or with ``dry_run`` just count) events older than ``days``."""
    days = max(1, int(days))
    queryset = AuditEvent.objects.older_than(days).for_action((action_prefix or "").strip())
    if dry_run:
        return queryset.count()

    deleted_count, _ = queryset.delete()
    logger.info("Purged %s audit events older than %s days (action prefix %r)", deleted_count, days, action_prefix)
    return deleted_count
