from __future__ import annotations

import logging

from celery import shared_task
from django.db.models import Q
from django.utils import timezone

from core.audit import create_audit_event

from .models import Risk

logger = logging.getLogger(__name__)


def due_review_queryset(today=None):
    today = today or timezone.localdate()
    return Risk.objects.filter(
        status=Risk.STATUS_ACTIVE,
        risk_nature=Risk.NATURE_STATIC,
        archived=False,
    ).filter(Q(next_review_date__lte=today) | Q(expiry_date__lte=today))


@shared_task(name="risk.tasks.flag_due_risk_reviews")
def flag_due_risk_reviews() -> int:
    today = timezone.localdate()
    flagged = 0
    for risk in due_review_queryset(today):
        create_audit_event(
            action="risk.review.due",
            entity_type="risk",
            entity_id=risk.id,
            metadata={
                "next_review_date": risk.next_review_date.isoformat() if risk.next_review_date else None,
                "expiry_date": risk.expiry_date.isoformat() if risk.expiry_date else None,
            },
        )
        flagged += 1
    logger.info("Flagged %s static risks due for review on %s", flagged, today)
    return flagged
