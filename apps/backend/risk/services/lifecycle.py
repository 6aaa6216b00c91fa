"""Risk status state machine.

Only the review decisions on a proposed risk are gated here. Archival is a
soft-retirement flag that may be applied from any status.
"""
from __future__ import annotations

import logging

from risk.models import Risk

from .exceptions import InvalidTransition

logger = logging.getLogger(__name__)

STATUSES = frozenset(value for value, _ in Risk.STATUS_CHOICES)

TRANSITIONS = {
    Risk.STATUS_PROPOSED: frozenset({Risk.STATUS_ACTIVE, Risk.STATUS_REJECTED, Risk.STATUS_MERGED}),
}

TERMINAL_STATUSES = frozenset(
    {Risk.STATUS_ACTIVE, Risk.STATUS_REJECTED, Risk.STATUS_MERGED, Risk.STATUS_ARCHIVED}
)


def can_transition(current: str, requested: str) -> bool:
    if requested not in STATUSES:
        return False
    if requested == Risk.STATUS_ARCHIVED:
        return True
    return requested in TRANSITIONS.get(current, frozenset())


def ensure_transition(current: str, requested: str) -> None:
    if not can_transition(current, requested):
        logger.info("Refused transition %s -> %s", current, requested)
        raise InvalidTransition(current, requested)


def allowed_transitions(current: str) -> list[str]:
    targets = set(TRANSITIONS.get(current, frozenset())) | {Risk.STATUS_ARCHIVED}
    return sorted(targets)


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES
