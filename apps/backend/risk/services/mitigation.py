from __future__ import annotations

import logging
from typing import Optional

from django.db import transaction

from risk.models import Risk, RiskScoringSnapshot

from .scoring import LEVEL_HIGH, ScoreInputs, ScoreResult, compute_optional_score
from .store import DjangoRiskStore, RiskStore

logger = logging.getLogger(__name__)

UNSET_MITIGATION = {field_name: None for field_name in Risk.MITIGATION_FIELDS}


def compute_mitigation(risk: Risk) -> Optional[ScoreResult]:
    """Residual score of a risk, or ``None`` while any mitigation rating is unset."""
    return compute_optional_score(
        risk.mitigated_confidentiality_score,
        risk.mitigated_integrity_score,
        risk.mitigated_availability_score,
        risk.mitigated_likelihood,
    )


def has_policy_nonconformance(risk: Risk) -> bool:
    # MODIFY on a HIGH initial risk makes the mitigation assessment mandatory.
    if risk.initial_risk_treatment_category != Risk.TREATMENT_MODIFY:
        return False
    if risk.risk_level != LEVEL_HIGH:
        return False
    return compute_mitigation(risk) is None or not (risk.mitigation_description or "").strip()


class MitigationService:
    def __init__(self, store: Optional[RiskStore] = None):
        self.store = store or DjangoRiskStore()

    def set_mitigation(
        self,
        risk: Risk,
        scores: ScoreInputs,
        *,
        description: Optional[str] = None,
        actor: str = "system",
    ) -> Risk:
        scores = ScoreInputs.clamped(scores.confidentiality, scores.integrity, scores.availability, scores.likelihood)
        changes = {
            "mitigated_confidentiality_score": scores.confidentiality,
            "mitigated_integrity_score": scores.integrity,
            "mitigated_availability_score": scores.availability,
            "mitigated_likelihood": scores.likelihood,
        }
        if description is not None:
            changes["mitigation_description"] = description

        result = scores.compute()
        with transaction.atomic():
            risk = self.store.save(risk, changes)
            RiskScoringSnapshot.objects.create(
                risk=risk,
                kind=RiskScoringSnapshot.KIND_MITIGATED,
                confidentiality_score=scores.confidentiality,
                integrity_score=scores.integrity,
                availability_score=scores.availability,
                likelihood=scores.likelihood,
                score=result.score,
                level=result.level,
                calculated_by=actor,
            )
        logger.info("Risk %s mitigated to %s (%s) by %s", risk.pk, result.score, result.level, actor)
        return risk

    def clear_mitigation(self, risk: Risk, *, actor: str = "system") -> Risk:
        """Return the risk to the not-yet-mitigated state. Repeating it changes nothing."""
        if all(getattr(risk, field_name) is None for field_name in Risk.MITIGATION_FIELDS):
            return risk

        with transaction.atomic():
            risk = self.store.save(risk, dict(UNSET_MITIGATION))
            RiskScoringSnapshot.objects.create(risk=risk, kind=RiskScoringSnapshot.KIND_MITIGATED, calculated_by=actor)
        logger.info("Risk %s mitigation cleared by %s", risk.pk, actor)
        return risk
