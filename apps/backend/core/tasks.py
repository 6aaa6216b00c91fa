import logging

from celery import shared_task
from django.conf import settings

from .audit import purge_audit_events

logger = logging.getLogger(__name__)


@shared_task(name="core.tasks.purge_old_audit_events")
def purge_old_audit_events(days: int | None = None, action_prefix: str = "") -> int:
    deleted = purge_audit_events(days=days or settings.AUDIT_RETENTION_DAYS, action_prefix=action_prefix)
    logger.info("Audit retention run removed %s events", deleted)
    return deleted
