import json
from typing import Any, Dict

from django.core.management.base import BaseCommand

from risk.services.review_queue import ReviewQueueAggregator


class Command(BaseCommand):
    help = "Print the reviewer inbox: proposed risks awaiting a decision and active merge targets."

    def add_arguments(self, parser):
        parser.add_argument("--page-size", type=int, default=None)
        parser.add_argument("--max-pages", type=int, default=None)
        parser.add_argument("--format", choices=["text", "json"], default="text")

    def handle(self, *args, **options):
        aggregator = ReviewQueueAggregator(page_size=options.get("page_size"), max_pages=options.get("max_pages"))
        inbox = aggregator.build_inbox()

        if options["format"] == "json":
            payload: Dict[str, Any] = {
                "proposed": [self._row(risk) for risk in inbox.proposed],
                "merge_candidates": [self._row(risk) for risk in inbox.merge_candidates],
                "truncated": inbox.truncated,
            }
            self.stdout.write(json.dumps(payload, ensure_ascii=False, indent=2))
            return

        self.stdout.write(f"Proposed risks: {len(inbox.proposed)}")
        for risk in inbox.proposed:
            self.stdout.write(f"- #{risk.id} {risk.title} | {risk.calculated_score} ({risk.risk_level})")
        self.stdout.write(f"Merge candidates: {len(inbox.merge_candidates)}")
        if inbox.truncated:
            self.stdout.write(self.style.WARNING("Page limit reached; the inbox may be incomplete."))

    @staticmethod
    def _row(risk) -> Dict[str, Any]:
        return {
            "id": risk.id,
            "title": risk.title,
            "department": risk.department,
            "calculated_score": risk.calculated_score,
            "risk_level": risk.risk_level,
        }
