from datetime import timedelta

from django.test import TestCase
from django.utils import timezone

from core.models import AuditEvent
from risk.models import Control, Risk
from risk.services.controls import link_controls, parse_control_codes
from risk.tasks import due_review_queryset, flag_due_risk_reviews


class FlagDueRiskReviewsTests(TestCase):
    def setUp(self):
        today = timezone.localdate()
        self.overdue = Risk.objects.create(
            title="Overdue static",
            status=Risk.STATUS_ACTIVE,
            risk_nature=Risk.NATURE_STATIC,
            next_review_date=today - timedelta(days=1),
        )
        self.expired = Risk.objects.create(
            title="Expired static",
            status=Risk.STATUS_ACTIVE,
            risk_nature=Risk.NATURE_STATIC,
            next_review_date=today + timedelta(days=30),
            expiry_date=today,
        )
        Risk.objects.create(
            title="Not yet due",
            status=Risk.STATUS_ACTIVE,
            risk_nature=Risk.NATURE_STATIC,
            next_review_date=today + timedelta(days=30),
        )
        Risk.objects.create(
            title="Instance risk",
            status=Risk.STATUS_ACTIVE,
            risk_nature=Risk.NATURE_INSTANCE,
            next_review_date=today - timedelta(days=1),
        )
        Risk.objects.create(
            title="Archived static",
            status=Risk.STATUS_ACTIVE,
            risk_nature=Risk.NATURE_STATIC,
            next_review_date=today - timedelta(days=1),
            archived=True,
        )

    def test_due_queryset(self):
        self.assertEqual(set(due_review_queryset()), {self.overdue, self.expired})

    def test_task_records_audit_event_per_risk(self):
        flagged = flag_due_risk_reviews()

        self.assertEqual(flagged, 2)
        events = AuditEvent.objects.filter(action="risk.review.due")
        self.assertEqual({event.entity_id for event in events}, {str(self.overdue.id), str(self.expired.id)})


class ControlLinkTests(TestCase):
    def test_parse_control_codes(self):
        self.assertEqual(parse_control_codes(" A.8.3, A.5.9 ,,A.8.3"), ["A.8.3", "A.5.9", "A.8.3"])
        self.assertEqual(parse_control_codes(""), [])
        self.assertEqual(parse_control_codes(None), [])

    def test_link_controls_creates_placeholders_and_replaces_links(self):
        Control.objects.create(code="A.5.9", title="Inventory of information")
        risk = Risk.objects.create(title="Lost laptop")

        link_controls(risk, ["A.8.3", "A.5.9", "A.8.3"])

        self.assertEqual(sorted(risk.controls.values_list("code", flat=True)), ["A.5.9", "A.8.3"])
        self.assertEqual(Control.objects.get(code="A.8.3").title, "Control A.8.3")
        self.assertEqual(Control.objects.get(code="A.5.9").title, "Inventory of information")

        link_controls(risk, ["A.5.9"])
        self.assertEqual(list(risk.controls.values_list("code", flat=True)), ["A.5.9"])
