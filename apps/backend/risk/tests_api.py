from django.contrib.auth import get_user_model
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from core.models import AuditEvent
from risk.models import Risk, RiskScoringSnapshot


class RiskApiTestCase(APITestCase):
    def setUp(self):
        self.user = get_user_model().objects.create_user(username="api_reviewer", password="pass1234")
        self.client.force_authenticate(self.user)
        self.proposed = Risk.objects.create(title="Phishing against finance", status=Risk.STATUS_PROPOSED)
        self.active = Risk.objects.create(title="Credential phishing", status=Risk.STATUS_ACTIVE)


class RiskCrudApiTests(RiskApiTestCase):
    def test_anonymous_requests_are_refused(self):
        self.client.force_authenticate(None)
        response = self.client.get(reverse("risk-list"))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_create_links_controls_and_audits(self):
        response = self.client.post(
            reverse("risk-list"),
            data={
                "title": "Shadow IT SaaS usage",
                "status": Risk.STATUS_PROPOSED,
                "confidentiality_score": 4,
                "integrity_score": 3,
                "availability_score": 2,
                "likelihood": 3,
                "annex_a_controls_raw": "A.5.23, A.8.3",
            },
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data["calculated_score"], 27)
        self.assertEqual(response.data["risk_level"], "MEDIUM")
        risk = Risk.objects.get(pk=response.data["id"])
        self.assertEqual(sorted(risk.controls.values_list("code", flat=True)), ["A.5.23", "A.8.3"])
        self.assertTrue(AuditEvent.objects.filter(action="risk.create", entity_id=str(risk.id)).exists())

    def test_create_cannot_start_active(self):
        response = self.client.post(
            reverse("risk-list"),
            data={"title": "Sneaky", "status": Risk.STATUS_ACTIVE},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("status", response.data)

    def test_update_cannot_change_status(self):
        response = self.client.patch(
            reverse("risk-detail", args=[self.proposed.id]),
            data={"status": Risk.STATUS_ACTIVE},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_derived_scores_are_read_only(self):
        response = self.client.patch(
            reverse("risk-detail", args=[self.proposed.id]),
            data={"calculated_score": 75, "likelihood": 2},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["calculated_score"], 6)

    def test_list_filters_by_status(self):
        response = self.client.get(reverse("risk-list"), {"status": Risk.STATUS_ACTIVE})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row["id"] for row in response.data["results"]], [self.active.id])


class RiskLifecycleApiTests(RiskApiTestCase):
    def test_approve_with_revised_scores(self):
        response = self.client.post(
            reverse("risk-approve", args=[self.proposed.id]),
            data={"confidentiality_score": 3, "integrity_score": 3, "availability_score": 3, "likelihood": 2},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["status"], Risk.STATUS_ACTIVE)
        self.assertEqual(response.data["calculated_score"], 18)
        self.assertEqual(response.data["risk_level"], "MEDIUM")
        event = AuditEvent.objects.get(action="risk.approve")
        self.assertEqual((event.from_status, event.to_status), (Risk.STATUS_PROPOSED, Risk.STATUS_ACTIVE))
        self.assertEqual(event.user, self.user)
        snapshot = RiskScoringSnapshot.objects.get(risk=self.proposed)
        self.assertEqual(snapshot.calculated_by, "api_reviewer")

    def test_approve_without_body_keeps_ratings(self):
        response = self.client.post(reverse("risk-approve", args=[self.proposed.id]), format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["calculated_score"], 3)

    def test_approve_rejects_out_of_range_ratings(self):
        response = self.client.post(
            reverse("risk-approve", args=[self.proposed.id]),
            data={"confidentiality_score": 6, "integrity_score": 3, "availability_score": 3, "likelihood": 2},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_approve_active_risk_conflicts(self):
        response = self.client.post(reverse("risk-approve", args=[self.active.id]), format="json")
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data["current"], Risk.STATUS_ACTIVE)
        self.assertEqual(response.data["requested"], Risk.STATUS_ACTIVE)

    def test_approval_defaults_from_wizard(self):
        self.proposed.wizard_data = {"impact": 4, "likelihood": 2}
        self.proposed.save()
        response = self.client.get(reverse("risk-approval-defaults", args=[self.proposed.id]))
        self.assertEqual(
            response.data,
            {"confidentiality_score": 4, "integrity_score": 4, "availability_score": 4, "likelihood": 2},
        )

    def test_reject_with_reason(self):
        response = self.client.post(
            reverse("risk-reject", args=[self.proposed.id]),
            data={"reason": "Invalid risk assessment"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["status"], Risk.STATUS_REJECTED)
        self.assertEqual(response.data["rejection_reason"], "Invalid risk assessment")

    def test_reject_with_blank_reason(self):
        for reason in ("", "   "):
            response = self.client.post(
                reverse("risk-reject", args=[self.proposed.id]),
                data={"reason": reason},
                format="json",
            )
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.proposed.refresh_from_db()
        self.assertEqual(self.proposed.status, Risk.STATUS_PROPOSED)

    def test_merge_into_active(self):
        response = self.client.post(
            reverse("risk-merge", args=[self.proposed.id]),
            data={"target_risk_id": self.active.id},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["status"], Risk.STATUS_MERGED)
        self.assertEqual(response.data["merged_into"], self.active.id)

    def test_merge_into_missing_risk(self):
        response = self.client.post(
            reverse("risk-merge", args=[self.proposed.id]),
            data={"target_risk_id": 999999},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_merge_into_itself(self):
        response = self.client.post(
            reverse("risk-merge", args=[self.proposed.id]),
            data={"target_risk_id": self.proposed.id},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_mitigation_set_and_clear(self):
        url = reverse("risk-mitigation", args=[self.active.id])
        response = self.client.put(
            url,
            data={
                "confidentiality_score": 2,
                "integrity_score": 2,
                "availability_score": 2,
                "likelihood": 2,
                "mitigation_description": "MFA everywhere",
            },
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["mitigated_score"], 12)
        self.assertEqual(response.data["mitigated_risk_level"], "LOW")

        response = self.client.delete(url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNone(response.data["mitigated_score"])
        self.assertIsNone(response.data["mitigated_likelihood"])

    def test_archive_keeps_status(self):
        response = self.client.post(reverse("risk-archive", args=[self.active.id]), format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data["archived"])
        self.assertEqual(response.data["status"], Risk.STATUS_ACTIVE)

    def test_risks_cannot_be_deleted(self):
        self.client.post(
            reverse("risk-merge", args=[self.proposed.id]),
            data={"target_risk_id": self.active.id},
            format="json",
        )

        for risk in (self.active, self.proposed):
            response = self.client.delete(reverse("risk-detail", args=[risk.id]))
            self.assertEqual(response.status_code, status.HTTP_405_METHOD_NOT_ALLOWED)
        self.assertEqual(Risk.objects.filter(id__in=[self.active.id, self.proposed.id]).count(), 2)
        self.proposed.refresh_from_db()
        self.assertEqual(self.proposed.merged_into_id, self.active.id)

    def test_link_controls(self):
        response = self.client.post(
            reverse("risk-controls", args=[self.active.id]),
            data={"codes": ["A.8.7", "A.8.7"]},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([control["code"] for control in response.data["controls"]], ["A.8.7"])


class ReviewQueueApiTests(RiskApiTestCase):
    def test_review_queue(self):
        response = self.client.get(reverse("review-queue"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row["id"] for row in response.data["proposed"]], [self.proposed.id])
        self.assertEqual([row["id"] for row in response.data["merge_candidates"]], [self.active.id])
        self.assertFalse(response.data["truncated"])
