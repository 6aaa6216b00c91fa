from __future__ import annotations

import logging
from typing import Optional

from risk.models import Risk

from .exceptions import RiskNotFound, ValidationError
from .lifecycle import ensure_transition
from .store import DjangoRiskStore, RiskStore

logger = logging.getLogger(__name__)


class MergeWorkflow:
    """Retire a proposed risk as a duplicate of an active one.

    Merging only records provenance: the target's scores, controls and other
    fields are left exactly as they are, and merge chains are never walked.
    """

    def __init__(self, store: Optional[RiskStore] = None):
        self.store = store or DjangoRiskStore()

    def merge(self, source: Risk, target_risk_id, *, actor: str = "system") -> Risk:
        ensure_transition(source.status, Risk.STATUS_MERGED)
        if target_risk_id in (None, ""):
            raise ValidationError({"target_risk_id": "A target risk is required."}, code="required")
        if str(target_risk_id) == str(source.pk):
            raise ValidationError({"target_risk_id": "A risk cannot be merged into itself."}, code="self_merge")

        target = self.store.get(target_risk_id)
        if target is None:
            logger.info("Merge of risk %s refused: target %s not found", source.pk, target_risk_id)
            raise RiskNotFound(target_risk_id)
        if target.status != Risk.STATUS_ACTIVE:
            logger.info("Merge of risk %s refused: target %s is %s", source.pk, target.pk, target.status)
            raise ValidationError(
                {"target_risk_id": f"Merge target must be {Risk.STATUS_ACTIVE}, not {target.status}."},
                code="invalid_target",
            )

        source = self.store.save(
            source,
            {"status": Risk.STATUS_MERGED, "merged_into": target},
            expected_status=Risk.STATUS_PROPOSED,
        )
        logger.info("Risk %s merged into %s by %s", source.pk, target.pk, actor)
        return source
