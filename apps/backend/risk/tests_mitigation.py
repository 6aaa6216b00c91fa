from django.test import TestCase

from risk.models import Risk, RiskScoringSnapshot
from risk.services.mitigation import MitigationService, compute_mitigation, has_policy_nonconformance
from risk.services.scoring import LEVEL_HIGH, LEVEL_LOW, ScoreInputs, ScoreResult


def make_risk(**overrides):
    values = {"title": "Ransomware on file servers", "status": Risk.STATUS_ACTIVE}
    values.update(overrides)
    return Risk.objects.create(**values)


class ComputeMitigationTests(TestCase):
    def test_three_of_four_ratings_is_unset(self):
        risk = make_risk(
            mitigated_confidentiality_score=2,
            mitigated_integrity_score=2,
            mitigated_availability_score=2,
        )
        self.assertIsNone(compute_mitigation(risk))

    def test_full_ratings_are_scored(self):
        risk = make_risk(
            mitigated_confidentiality_score=2,
            mitigated_integrity_score=2,
            mitigated_availability_score=2,
            mitigated_likelihood=2,
        )
        self.assertEqual(compute_mitigation(risk), ScoreResult(score=12, level=LEVEL_LOW))
        self.assertEqual(risk.mitigation, ScoreResult(score=12, level=LEVEL_LOW))


class MitigationServiceTests(TestCase):
    def test_set_mitigation_persists_residual_score(self):
        risk = make_risk(confidentiality_score=5, integrity_score=5, availability_score=5, likelihood=4)

        risk = MitigationService().set_mitigation(
            risk,
            ScoreInputs(2, 2, 2, 2),
            description="Offline backups and EDR rollout",
            actor="owner",
        )

        risk.refresh_from_db()
        self.assertEqual(risk.mitigated_score, 12)
        self.assertEqual(risk.mitigated_risk_level, LEVEL_LOW)
        self.assertEqual(risk.calculated_score, 60)
        self.assertEqual(risk.mitigation_description, "Offline backups and EDR rollout")
        snapshot = RiskScoringSnapshot.objects.get(risk=risk)
        self.assertEqual(snapshot.kind, RiskScoringSnapshot.KIND_MITIGATED)
        self.assertEqual(snapshot.score, 12)

    def test_set_mitigation_clamps_ratings(self):
        risk = MitigationService().set_mitigation(make_risk(), ScoreInputs(0, 9, 3, 1))
        self.assertEqual(risk.mitigated_score, (1 + 5 + 3) * 1)

    def test_clear_mitigation_resets_all_fields(self):
        risk = MitigationService().set_mitigation(make_risk(), ScoreInputs(2, 2, 2, 2))

        risk = MitigationService().clear_mitigation(risk)

        risk.refresh_from_db()
        for field_name in Risk.MITIGATION_FIELDS:
            self.assertIsNone(getattr(risk, field_name))
        self.assertIsNone(risk.mitigated_score)
        self.assertIsNone(risk.mitigated_risk_level)

    def test_mitigating_stale_copy_keeps_initial_scores(self):
        risk = make_risk()
        stale = Risk.objects.get(pk=risk.pk)
        Risk.objects.filter(pk=risk.pk).update(likelihood=5, calculated_score=15, risk_level="MEDIUM")

        MitigationService().set_mitigation(stale, ScoreInputs(1, 1, 1, 1))

        risk.refresh_from_db()
        self.assertEqual((risk.likelihood, risk.calculated_score, risk.risk_level), (5, 15, "MEDIUM"))
        self.assertEqual(risk.mitigated_score, 3)

    def test_clear_mitigation_is_idempotent(self):
        risk = make_risk()
        MitigationService().clear_mitigation(risk)
        MitigationService().clear_mitigation(risk)
        self.assertFalse(RiskScoringSnapshot.objects.filter(risk=risk).exists())


class PolicyNonconformanceTests(TestCase):
    def high_modify_risk(self, **overrides):
        values = {
            "confidentiality_score": 5,
            "integrity_score": 5,
            "availability_score": 5,
            "likelihood": 4,
            "initial_risk_treatment_category": Risk.TREATMENT_MODIFY,
        }
        values.update(overrides)
        return make_risk(**values)

    def test_high_modify_without_mitigation(self):
        risk = self.high_modify_risk()
        self.assertEqual(risk.risk_level, LEVEL_HIGH)
        self.assertTrue(has_policy_nonconformance(risk))

    def test_high_modify_with_blank_description(self):
        risk = self.high_modify_risk(
            mitigated_confidentiality_score=2,
            mitigated_integrity_score=2,
            mitigated_availability_score=2,
            mitigated_likelihood=2,
            mitigation_description="   ",
        )
        self.assertTrue(has_policy_nonconformance(risk))

    def test_documented_mitigation_conforms(self):
        risk = self.high_modify_risk(
            mitigated_confidentiality_score=2,
            mitigated_integrity_score=2,
            mitigated_availability_score=2,
            mitigated_likelihood=2,
            mitigation_description="Segmented network",
        )
        self.assertFalse(has_policy_nonconformance(risk))

    def test_other_treatments_and_levels_conform(self):
        self.assertFalse(has_policy_nonconformance(self.high_modify_risk(initial_risk_treatment_category=Risk.TREATMENT_RETAIN)))
        self.assertFalse(has_policy_nonconformance(self.high_modify_risk(likelihood=1)))
