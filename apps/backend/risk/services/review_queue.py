from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from django.conf import settings

from risk.models import Risk

from .store import DjangoRiskStore, RiskStore

logger = logging.getLogger(__name__)


@dataclass
class CollectedRisks:
    items: list = field(default_factory=list)
    pages_fetched: int = 0
    truncated: bool = False


@dataclass
class ReviewInbox:
    proposed: list = field(default_factory=list)
    merge_candidates: list = field(default_factory=list)
    truncated: bool = False


class ReviewQueueAggregator:
    """Builds a reviewer's worklist from the paged risk store.

    Every page is fetched independently, so a risk changing status mid-build
    can show up in both lists or in neither. Reaching ``max_pages`` ends the
    walk with what was collected; errors raised by the store propagate.
    """

    def __init__(
        self,
        store: Optional[RiskStore] = None,
        page_size: Optional[int] = None,
        max_pages: Optional[int] = None,
    ):
        self.store = store or DjangoRiskStore()
        self.page_size = page_size or settings.RISK_REVIEW_QUEUE_PAGE_SIZE
        self.max_pages = max_pages or settings.RISK_REVIEW_QUEUE_MAX_PAGES

    def collect(self, filters: Mapping[str, Any]) -> CollectedRisks:
        collected = CollectedRisks()
        page = 1
        while True:
            result = self.store.find_page(filters, page, self.page_size)
            collected.pages_fetched += 1
            collected.items.extend(result.items)

            total_pages = result.total_pages or 1
            if page >= total_pages or not result.items:
                break
            if page >= self.max_pages:
                collected.truncated = True
                logger.warning(
                    "Stopped paging %s after %s pages (%s risks collected, store reports %s pages)",
                    dict(filters),
                    page,
                    len(collected.items),
                    total_pages,
                )
                break
            page += 1
        return collected

    def build_inbox(self) -> ReviewInbox:
        proposed = self.collect({"status": Risk.STATUS_PROPOSED})
        candidates = self.collect({"status": Risk.STATUS_ACTIVE})
        return ReviewInbox(
            proposed=proposed.items,
            merge_candidates=candidates.items,
            truncated=proposed.truncated or candidates.truncated,
        )
