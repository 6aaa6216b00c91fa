from django.test import TestCase

from asset.models import Asset, AssetCategory

from .models import Risk
from .serializers import ControlLinkSerializer, MitigationSerializer, RiskSerializer
from .services.scoring import ScoreInputs


class RiskSerializerTests(TestCase):
    def setUp(self) -> None:
        self.category = AssetCategory.objects.create(name="Laptops")
        self.asset = Asset.objects.create(name_serial_no="LT-0042", model="ThinkPad T14", category=self.category)

    def test_create_defaults_to_draft(self) -> None:
        serializer = RiskSerializer(data={"title": "Lost laptop", "asset": self.asset.id})

        self.assertTrue(serializer.is_valid(), serializer.errors)
        risk = serializer.save()

        self.assertEqual(risk.status, Risk.STATUS_DRAFT)
        self.assertEqual(risk.calculated_score, 3)
        self.assertEqual(serializer.data["asset_detail"]["category_name"], "Laptops")

    def test_title_is_required(self) -> None:
        serializer = RiskSerializer(data={"description": "No title"})

        self.assertFalse(serializer.is_valid())
        self.assertIn("title", serializer.errors)

    def test_policy_nonconformance_is_exposed(self) -> None:
        risk = Risk.objects.create(
            title="Unencrypted backups",
            confidentiality_score=5,
            integrity_score=5,
            availability_score=5,
            likelihood=5,
            initial_risk_treatment_category=Risk.TREATMENT_MODIFY,
        )

        self.assertTrue(RiskSerializer(risk).data["policy_nonconformance"])

    def test_rejected_risk_keeps_status_on_update(self) -> None:
        risk = Risk.objects.create(title="Old report", status=Risk.STATUS_REJECTED, rejection_reason="Duplicate")
        serializer = RiskSerializer(risk, data={"status": Risk.STATUS_REJECTED, "description": "Edited"}, partial=True)

        self.assertTrue(serializer.is_valid(), serializer.errors)
        self.assertEqual(serializer.save().rejection_reason, "Duplicate")


class ActionPayloadSerializerTests(TestCase):
    def test_mitigation_payload_to_score_inputs(self) -> None:
        serializer = MitigationSerializer(
            data={"confidentiality_score": 2, "integrity_score": 3, "availability_score": 1, "likelihood": 4}
        )

        self.assertTrue(serializer.is_valid(), serializer.errors)
        self.assertEqual(serializer.to_score_inputs(), ScoreInputs(2, 3, 1, 4))

    def test_mitigation_payload_requires_all_ratings(self) -> None:
        serializer = MitigationSerializer(data={"confidentiality_score": 2, "integrity_score": 3, "availability_score": 1})

        self.assertFalse(serializer.is_valid())
        self.assertIn("likelihood", serializer.errors)

    def test_control_link_payload_needs_codes_or_raw(self) -> None:
        self.assertFalse(ControlLinkSerializer(data={}).is_valid())
        self.assertTrue(ControlLinkSerializer(data={"annex_a_controls_raw": "A.5.1"}).is_valid())
