from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Mapping, Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from risk.models import Risk, RiskScoringSnapshot

from .exceptions import ValidationError
from .lifecycle import ensure_transition
from .scoring import ScoreInputs, clamp_score
from .store import DjangoRiskStore, RiskStore

logger = logging.getLogger(__name__)


def initial_inputs(risk: Risk) -> ScoreInputs:
    return ScoreInputs.clamped(risk.confidentiality_score, risk.integrity_score, risk.availability_score, risk.likelihood)


def suggest_approval_scores(risk: Risk) -> ScoreInputs:
    """Scores a reviewer starts from when approving a proposed risk.

    Contributor wizard data rates a single impact level that applies to all
    three of C, I and A. Without usable wizard data the risk's own ratings are
    returned.
    """
    fallback = initial_inputs(risk)
    wizard = risk.wizard_data
    if not isinstance(wizard, Mapping):
        return fallback

    impact = wizard.get("impact") or wizard.get("impactLevel")
    likelihood = wizard.get("likelihood")
    if impact is None and likelihood is None:
        return fallback

    impact_score = clamp_score(impact) if impact is not None else None
    return ScoreInputs(
        confidentiality=impact_score or fallback.confidentiality,
        integrity=impact_score or fallback.integrity,
        availability=impact_score or fallback.availability,
        likelihood=clamp_score(likelihood) if likelihood is not None else fallback.likelihood,
    )


class ApprovalWorkflow:
    def __init__(self, store: Optional[RiskStore] = None, review_cadence_days: Optional[int] = None):
        self.store = store or DjangoRiskStore()
        self.review_cadence_days = review_cadence_days or settings.RISK_DEFAULT_REVIEW_CADENCE_DAYS

    def approve(self, risk: Risk, revised_scores: Optional[ScoreInputs] = None, *, actor: str = "system") -> Risk:
        ensure_transition(risk.status, Risk.STATUS_ACTIVE)

        inputs = revised_scores if revised_scores is not None else initial_inputs(risk)
        inputs = ScoreInputs.clamped(inputs.confidentiality, inputs.integrity, inputs.availability, inputs.likelihood)
        result = inputs.compute()

        changes: dict[str, Any] = {
            "confidentiality_score": inputs.confidentiality,
            "integrity_score": inputs.integrity,
            "availability_score": inputs.availability,
            "likelihood": inputs.likelihood,
            "calculated_score": result.score,
            "risk_level": result.level,
            "status": Risk.STATUS_ACTIVE,
            "rejection_reason": "",
        }
        if risk.risk_nature == Risk.NATURE_STATIC:
            today = timezone.localdate()
            cadence = risk.review_cadence_days or self.review_cadence_days
            changes["last_review_date"] = today
            changes["next_review_date"] = today + timedelta(days=cadence)

        with transaction.atomic():
            risk = self.store.save(risk, changes, expected_status=Risk.STATUS_PROPOSED)
            RiskScoringSnapshot.objects.create(
                risk=risk,
                kind=RiskScoringSnapshot.KIND_INITIAL,
                confidentiality_score=inputs.confidentiality,
                integrity_score=inputs.integrity,
                availability_score=inputs.availability,
                likelihood=inputs.likelihood,
                score=result.score,
                level=result.level,
                calculated_by=actor,
            )
        logger.info("Risk %s approved by %s with score %s (%s)", risk.pk, actor, result.score, result.level)
        return risk

    def reject(self, risk: Risk, reason: str, *, actor: str = "system") -> Risk:
        ensure_transition(risk.status, Risk.STATUS_REJECTED)
        if not isinstance(reason, str) or not reason.strip():
            logger.info("Rejection of risk %s refused: empty reason", risk.pk)
            raise ValidationError({"reason": "A rejection reason is required."}, code="required")

        risk = self.store.save(
            risk,
            {"status": Risk.STATUS_REJECTED, "rejection_reason": reason},
            expected_status=Risk.STATUS_PROPOSED,
        )
        logger.info("Risk %s rejected by %s", risk.pk, actor)
        return risk
