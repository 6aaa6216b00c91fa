from datetime import timedelta
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.test import RequestFactory, TestCase
from django.utils import timezone

from core.audit import create_audit_event
from core.models import AuditEvent
from core.tasks import purge_old_audit_events


class CreateAuditEventTests(TestCase):
    def test_records_transition_and_request_context(self):
        user = get_user_model().objects.create_user(username="reviewer", password="pass1234")
        request = RequestFactory().post("/api/v1/risks/7/approve/", HTTP_USER_AGENT="pytest", REMOTE_ADDR="10.0.0.5")
        request.user = user

        event = create_audit_event(
            action="risk.approve",
            entity_type="risk",
            entity_id=7,
            from_status="PROPOSED",
            to_status="ACTIVE",
            metadata={"calculated_score": 18},
            request=request,
        )

        self.assertEqual(event.user, user)
        self.assertEqual(event.entity_id, "7")
        self.assertEqual(event.from_status, "PROPOSED")
        self.assertEqual(event.to_status, "ACTIVE")
        self.assertEqual(event.method, "POST")
        self.assertEqual(event.ip_address, "10.0.0.5")
        self.assertEqual(event.user_agent, "pytest")
        self.assertEqual(event.metadata, {"calculated_score": 18})

    def test_without_request_stores_no_actor(self):
        event = create_audit_event(action="risk.review.due", entity_type="risk", entity_id=None)
        self.assertIsNone(event.user)
        self.assertEqual(event.entity_id, "")
        self.assertEqual(event.path, "")


class AuditRetentionCommandTests(TestCase):
    def _age(self, event, days):
        AuditEvent.objects.filter(id=event.id).update(created_at=timezone.now() - timedelta(days=days))

    def test_purge_audit_events_deletes_old_rows(self):
        old_event = AuditEvent.objects.create(action="risk.create", entity_type="risk", entity_id="1")
        recent_event = AuditEvent.objects.create(action="risk.update", entity_type="risk", entity_id="2")
        self._age(old_event, 200)

        call_command("purge_audit_events", days=180)

        self.assertFalse(AuditEvent.objects.filter(id=old_event.id).exists())
        self.assertTrue(AuditEvent.objects.filter(id=recent_event.id).exists())

    def test_purge_audit_events_dry_run_keeps_rows(self):
        old_event = AuditEvent.objects.create(action="risk.create", entity_type="risk", entity_id="3")
        self._age(old_event, 200)

        call_command("purge_audit_events", days=180, dry_run=True)
        self.assertTrue(AuditEvent.objects.filter(id=old_event.id).exists())

    def test_purge_audit_events_honours_action_prefix(self):
        review_event = AuditEvent.objects.create(action="risk.review.due", entity_type="risk", entity_id="4")
        approve_event = AuditEvent.objects.create(action="risk.approve", entity_type="risk", entity_id="4")
        self._age(review_event, 200)
        self._age(approve_event, 200)

        call_command("purge_audit_events", days=180, action="risk.review")

        self.assertFalse(AuditEvent.objects.filter(id=review_event.id).exists())
        self.assertTrue(AuditEvent.objects.filter(id=approve_event.id).exists())

    @patch("core.tasks.purge_audit_events", return_value=3)
    def test_celery_task_uses_configured_retention(self, mocked_purge):
        self.assertEqual(purge_old_audit_events(), 3)
        mocked_purge.assert_called_once_with(days=180, action_prefix="")
