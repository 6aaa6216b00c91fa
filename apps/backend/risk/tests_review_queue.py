from io import StringIO
import json

from django.core.management import call_command
from django.test import SimpleTestCase, TestCase

from risk.models import Risk
from risk.services.review_queue import ReviewQueueAggregator
from risk.services.store import RiskPage


class FakeRiskStore:
    def __init__(self, rows_by_status, reported_pages=None):
        self.rows_by_status = rows_by_status
        self.reported_pages = reported_pages
        self.calls = []

    def find_page(self, filters, page, limit):
        self.calls.append((filters["status"], page, limit))
        rows = self.rows_by_status.get(filters["status"], [])
        start = (page - 1) * limit
        total_pages = self.reported_pages or max(1, -(-len(rows) // limit))
        return RiskPage(items=rows[start:start + limit], total_pages=total_pages)


class RunawayStore:
    """Claims more pages forever and never runs out of rows."""

    def __init__(self):
        self.calls = 0

    def find_page(self, filters, page, limit):
        self.calls += 1
        return RiskPage(items=[f"risk-{page}-{n}" for n in range(limit)], total_pages=page + 1)


class FailingStore:
    def find_page(self, filters, page, limit):
        raise ConnectionError("store unavailable")


class ReviewQueueAggregatorTests(SimpleTestCase):
    def test_collects_every_page(self):
        store = FakeRiskStore({Risk.STATUS_PROPOSED: list(range(150))})

        collected = ReviewQueueAggregator(store, page_size=100, max_pages=50).collect({"status": Risk.STATUS_PROPOSED})

        self.assertEqual(collected.items, list(range(150)))
        self.assertEqual(collected.pages_fetched, 2)
        self.assertFalse(collected.truncated)
        self.assertEqual(store.calls, [(Risk.STATUS_PROPOSED, 1, 100), (Risk.STATUS_PROPOSED, 2, 100)])

    def test_empty_result_needs_one_fetch(self):
        store = FakeRiskStore({})
        collected = ReviewQueueAggregator(store, page_size=100, max_pages=50).collect({"status": Risk.STATUS_ACTIVE})
        self.assertEqual(collected.items, [])
        self.assertEqual(collected.pages_fetched, 1)

    def test_empty_page_ends_walk_even_if_store_reports_more(self):
        store = FakeRiskStore({Risk.STATUS_PROPOSED: list(range(5))}, reported_pages=10)
        collected = ReviewQueueAggregator(store, page_size=5, max_pages=50).collect({"status": Risk.STATUS_PROPOSED})
        self.assertEqual(collected.items, list(range(5)))
        self.assertEqual(collected.pages_fetched, 2)

    def test_runaway_store_stops_at_page_cap(self):
        store = RunawayStore()

        with self.assertLogs("risk.services.review_queue", level="WARNING"):
            collected = ReviewQueueAggregator(store, page_size=10, max_pages=3).collect({"status": Risk.STATUS_PROPOSED})

        self.assertEqual(store.calls, 3)
        self.assertEqual(len(collected.items), 30)
        self.assertTrue(collected.truncated)

    def test_store_errors_propagate(self):
        with self.assertRaises(ConnectionError):
            ReviewQueueAggregator(FailingStore(), page_size=10, max_pages=3).collect({"status": Risk.STATUS_PROPOSED})

    def test_inbox_splits_by_status(self):
        store = FakeRiskStore({Risk.STATUS_PROPOSED: ["p1", "p2"], Risk.STATUS_ACTIVE: ["a1"]})

        inbox = ReviewQueueAggregator(store, page_size=100, max_pages=50).build_inbox()

        self.assertEqual(inbox.proposed, ["p1", "p2"])
        self.assertEqual(inbox.merge_candidates, ["a1"])
        self.assertFalse(inbox.truncated)


class ReviewQueueDatabaseTests(TestCase):
    def setUp(self):
        for index in range(7):
            Risk.objects.create(title=f"Proposed {index}", status=Risk.STATUS_PROPOSED, likelihood=(index % 5) + 1)
        Risk.objects.create(title="Active", status=Risk.STATUS_ACTIVE)
        Risk.objects.create(title="Draft", status=Risk.STATUS_DRAFT)

    def test_inbox_from_database(self):
        inbox = ReviewQueueAggregator(page_size=3, max_pages=50).build_inbox()

        self.assertEqual(len(inbox.proposed), 7)
        self.assertEqual(len({risk.pk for risk in inbox.proposed}), 7)
        self.assertEqual([risk.title for risk in inbox.merge_candidates], ["Active"])
        scores = [risk.calculated_score for risk in inbox.proposed]
        self.assertEqual(scores, sorted(scores, reverse=True))

    def test_review_queue_command_json(self):
        out = StringIO()
        call_command("review_queue", "--format", "json", "--page-size", "2", stdout=out)

        payload = json.loads(out.getvalue())
        self.assertEqual(len(payload["proposed"]), 7)
        self.assertEqual(len(payload["merge_candidates"]), 1)
        self.assertFalse(payload["truncated"])

    def test_review_queue_command_reports_truncation(self):
        out = StringIO()
        call_command("review_queue", "--page-size", "2", "--max-pages", "2", stdout=out)
        self.assertIn("Page limit reached", out.getvalue())
