"""Quantitative risk scoring.

A score is ``(confidentiality + integrity + availability) * likelihood`` with
every input clamped to the 1..5 rating scale first. The same calculation backs
both the initial assessment and the mitigated (residual) assessment.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Optional

SCORE_MIN = 1
SCORE_MAX = 5

LEVEL_LOW = "LOW"
LEVEL_MEDIUM = "MEDIUM"
LEVEL_HIGH = "HIGH"
LEVEL_CHOICES = [
    (LEVEL_LOW, "Low"),
    (LEVEL_MEDIUM, "Medium"),
    (LEVEL_HIGH, "High"),
]

# Lower bounds (inclusive) of each bucket, highest first.
MEDIUM_THRESHOLD = 15
HIGH_THRESHOLD = 36


@dataclass(frozen=True)
class ScoreResult:
    score: int
    level: str


@dataclass(frozen=True)
class ScoreInputs:
    confidentiality: int
    integrity: int
    availability: int
    likelihood: int

    @classmethod
    def clamped(cls, confidentiality: Any, integrity: Any, availability: Any, likelihood: Any) -> "ScoreInputs":
        return cls(
            confidentiality=clamp_score(confidentiality),
            integrity=clamp_score(integrity),
            availability=clamp_score(availability),
            likelihood=clamp_score(likelihood),
        )

    def compute(self) -> ScoreResult:
        return compute_score(self.confidentiality, self.integrity, self.availability, self.likelihood)


def clamp_score(value: Any) -> int:
    """Coerce a rating into 1..5; anything non-numeric or non-finite becomes 1."""
    if isinstance(value, bool) or value is None:
        return SCORE_MIN
    try:
        number = float(value)
    except (TypeError, ValueError):
        return SCORE_MIN
    if not math.isfinite(number):
        return SCORE_MIN
    return min(max(int(number), SCORE_MIN), SCORE_MAX)


def risk_level_for(score: int) -> str:
    if score >= HIGH_THRESHOLD:
        return LEVEL_HIGH
    if score >= MEDIUM_THRESHOLD:
        return LEVEL_MEDIUM
    return LEVEL_LOW


def compute_score(confidentiality: Any, integrity: Any, availability: Any, likelihood: Any) -> ScoreResult:
    c = clamp_score(confidentiality)
    i = clamp_score(integrity)
    a = clamp_score(availability)
    l = clamp_score(likelihood)  # noqa: E741
    score = (c + i + a) * l
    return ScoreResult(score=score, level=risk_level_for(score))


def compute_optional_score(
    confidentiality: Optional[Any],
    integrity: Optional[Any],
    availability: Optional[Any],
    likelihood: Optional[Any],
) -> Optional[ScoreResult]:
    """Score four optional ratings; ``None`` unless every rating is present."""
    if any(value is None for value in (confidentiality, integrity, availability, likelihood)):
        return None
    return compute_score(confidentiality, integrity, availability, likelihood)
