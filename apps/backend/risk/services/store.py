from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Protocol

from django.core.paginator import EmptyPage, Paginator
from django.db import transaction

from risk.models import Risk

from .exceptions import InvalidTransition


@dataclass
class RiskPage:
    items: list = field(default_factory=list)
    total_pages: int = 0


class RiskStore(Protocol):
    def get(self, risk_id) -> Optional[Risk]:
        ...

    def find_page(self, filters: Mapping[str, Any], page: int, limit: int) -> RiskPage:
        ...

    def save(self, risk: Risk, changes: Mapping[str, Any], expected_status: Optional[str] = None) -> Risk:
        ...


class DjangoRiskStore:
    """ORM-backed store.

    ``save`` is the single write path used by the lifecycle workflows: the row
    is locked, the status precondition re-checked against the database, and
    all changes written together. When the check or the write fails nothing
    is applied, in the database or on the instance.
    """

    ordering = ("-calculated_score", "-created_at", "-id")

    def __init__(self, queryset=None):
        self._queryset = queryset if queryset is not None else Risk.objects.all()

    def get(self, risk_id) -> Optional[Risk]:
        if risk_id in (None, ""):
            return None
        try:
            return self._queryset.get(pk=risk_id)
        except (Risk.DoesNotExist, ValueError, TypeError):
            return None

    def find_page(self, filters: Mapping[str, Any], page: int, limit: int) -> RiskPage:
        queryset = self._queryset.filter(**dict(filters)).order_by(*self.ordering)
        paginator = Paginator(queryset, limit)
        try:
            current = paginator.page(page)
        except EmptyPage:
            return RiskPage(items=[], total_pages=paginator.num_pages)
        return RiskPage(items=list(current.object_list), total_pages=paginator.num_pages)

    def save(self, risk: Risk, changes: Mapping[str, Any], expected_status: Optional[str] = None) -> Risk:
        touched = Risk.dependent_fields(changes) | set(Risk.INITIAL_SCORE_FIELDS) | set(Risk.MITIGATION_FIELDS)
        previous = {field_name: getattr(risk, field_name) for field_name in touched}
        try:
            with transaction.atomic():
                if expected_status is not None:
                    persisted_status = (
                        Risk.objects.select_for_update().filter(pk=risk.pk).values_list("status", flat=True).first()
                    )
                    if persisted_status != expected_status:
                        requested = changes.get("status", expected_status)
                        raise InvalidTransition(
                            persisted_status or risk.status,
                            requested,
                            message=(
                                f"Risk {risk.pk} is {persisted_status or 'missing'}, expected {expected_status}; "
                                f"cannot move it to {requested}."
                            ),
                        )
                for field_name, value in changes.items():
                    setattr(risk, field_name, value)
                risk.save(update_fields=list(changes.keys()))
        except Exception:
            # Roll the instance back along with the row.
            for field_name, value in previous.items():
                setattr(risk, field_name, value)
            raise
        return risk
