from __future__ import annotations

import logging
from typing import Optional

from django.utils import timezone

from risk.models import Risk

from .lifecycle import ensure_transition
from .store import DjangoRiskStore, RiskStore

logger = logging.getLogger(__name__)


def archive_risk(risk: Risk, *, store: Optional[RiskStore] = None, actor: str = "system") -> Risk:
    """Soft-retire a risk.

    Only the ``archived`` flag and date are set; status, rejection reason and
    merge provenance are kept as they were.
    """
    ensure_transition(risk.status, Risk.STATUS_ARCHIVED)
    if risk.archived:
        return risk

    store = store or DjangoRiskStore()
    risk = store.save(risk, {"archived": True, "archived_date": timezone.now()})
    logger.info("Risk %s archived by %s", risk.pk, actor)
    return risk
