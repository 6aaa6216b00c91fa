from datetime import timedelta
from unittest.mock import patch

from django.core.exceptions import ValidationError
from django.db import DatabaseError, IntegrityError
from django.test import TestCase, override_settings
from django.utils import timezone

from risk.models import Risk, RiskScoringSnapshot
from risk.services.approval import ApprovalWorkflow, suggest_approval_scores
from risk.services.exceptions import InvalidTransition, RiskNotFound
from risk.services.merge import MergeWorkflow
from risk.services.retirement import archive_risk
from risk.services.scoring import LEVEL_HIGH, LEVEL_LOW, LEVEL_MEDIUM, ScoreInputs
from risk.services.store import DjangoRiskStore


def make_risk(**overrides):
    values = {"title": "Unpatched VPN appliance", "status": Risk.STATUS_PROPOSED}
    values.update(overrides)
    return Risk.objects.create(**values)


class RiskModelTests(TestCase):
    def test_derived_scores_follow_ratings(self):
        risk = make_risk(confidentiality_score=5, integrity_score=4, availability_score=3, likelihood=3)
        self.assertEqual(risk.calculated_score, 36)
        self.assertEqual(risk.risk_level, LEVEL_HIGH)

    def test_out_of_range_ratings_are_clamped_on_save(self):
        risk = make_risk(confidentiality_score=9, integrity_score=0, availability_score=2, likelihood=8)
        self.assertEqual(risk.confidentiality_score, 5)
        self.assertEqual(risk.integrity_score, 1)
        self.assertEqual(risk.calculated_score, 40)

    def test_partial_mitigation_has_no_residual_score(self):
        risk = make_risk(mitigated_confidentiality_score=2, mitigated_integrity_score=2, mitigated_availability_score=2)
        self.assertIsNone(risk.mitigated_score)
        self.assertIsNone(risk.mitigated_risk_level)
        self.assertIsNone(risk.mitigation)


class ApprovalWorkflowTests(TestCase):
    def test_approve_with_revised_scores(self):
        risk = make_risk()

        risk = ApprovalWorkflow().approve(risk, ScoreInputs(3, 3, 3, 2), actor="reviewer")

        risk.refresh_from_db()
        self.assertEqual(risk.status, Risk.STATUS_ACTIVE)
        self.assertEqual(risk.calculated_score, 18)
        self.assertEqual(risk.risk_level, LEVEL_MEDIUM)
        snapshot = RiskScoringSnapshot.objects.get(risk=risk)
        self.assertEqual(snapshot.kind, RiskScoringSnapshot.KIND_INITIAL)
        self.assertEqual(snapshot.score, 18)
        self.assertEqual(snapshot.calculated_by, "reviewer")

    def test_approve_without_revision_uses_current_ratings(self):
        risk = make_risk(confidentiality_score=2, integrity_score=2, availability_score=2, likelihood=1)
        risk = ApprovalWorkflow().approve(risk)
        self.assertEqual(risk.calculated_score, 6)
        self.assertEqual(risk.risk_level, LEVEL_LOW)

    def test_revised_scores_are_clamped(self):
        risk = ApprovalWorkflow().approve(make_risk(), ScoreInputs(7, 0, 5, 9))
        self.assertEqual(
            (risk.confidentiality_score, risk.integrity_score, risk.availability_score, risk.likelihood),
            (5, 1, 5, 5),
        )
        self.assertEqual(risk.calculated_score, 55)

    def test_approve_requires_proposed(self):
        for status in (Risk.STATUS_DRAFT, Risk.STATUS_ACTIVE):
            risk = make_risk(status=status)
            with self.assertRaises(InvalidTransition):
                ApprovalWorkflow().approve(risk, ScoreInputs(3, 3, 3, 2))
            risk.refresh_from_db()
            self.assertEqual(risk.status, status)

    def test_second_approval_is_refused(self):
        risk = ApprovalWorkflow().approve(make_risk(), ScoreInputs(3, 3, 3, 2))
        with self.assertRaises(InvalidTransition):
            ApprovalWorkflow().approve(risk, ScoreInputs(5, 5, 5, 5))
        risk.refresh_from_db()
        self.assertEqual(risk.calculated_score, 18)

    def test_stale_copy_cannot_be_decided_twice(self):
        risk = make_risk()
        stale = Risk.objects.get(pk=risk.pk)
        ApprovalWorkflow().approve(risk, ScoreInputs(3, 3, 3, 2))

        with self.assertRaises(InvalidTransition):
            ApprovalWorkflow().reject(stale, "Duplicate of another report")

        risk.refresh_from_db()
        self.assertEqual(risk.status, Risk.STATUS_ACTIVE)
        self.assertEqual(risk.rejection_reason, "")

    @override_settings(RISK_DEFAULT_REVIEW_CADENCE_DAYS=90)
    def test_static_risk_gets_review_dates(self):
        risk = ApprovalWorkflow().approve(make_risk(risk_nature=Risk.NATURE_STATIC))
        today = timezone.localdate()
        self.assertEqual(risk.last_review_date, today)
        self.assertEqual(risk.next_review_date, today + timedelta(days=90))

    def test_risk_cadence_overrides_default(self):
        risk = ApprovalWorkflow().approve(make_risk(risk_nature=Risk.NATURE_STATIC, review_cadence_days=30))
        self.assertEqual(risk.next_review_date, timezone.localdate() + timedelta(days=30))

    def test_instance_risk_gets_no_review_dates(self):
        risk = ApprovalWorkflow().approve(make_risk(risk_nature=Risk.NATURE_INSTANCE))
        self.assertIsNone(risk.next_review_date)

    def test_reject_records_reason(self):
        risk = ApprovalWorkflow().reject(make_risk(), "Invalid risk assessment")
        risk.refresh_from_db()
        self.assertEqual(risk.status, Risk.STATUS_REJECTED)
        self.assertEqual(risk.rejection_reason, "Invalid risk assessment")

    def test_reject_requires_reason(self):
        risk = make_risk()
        for reason in ("", "   ", None):
            with self.assertRaises(ValidationError) as ctx:
                ApprovalWorkflow().reject(risk, reason)
            self.assertNotIsInstance(ctx.exception, InvalidTransition)
        risk.refresh_from_db()
        self.assertEqual(risk.status, Risk.STATUS_PROPOSED)

    def test_reject_requires_proposed(self):
        risk = make_risk(status=Risk.STATUS_DRAFT)
        with self.assertRaises(InvalidTransition):
            ApprovalWorkflow().reject(risk, "Out of scope")

    def test_failed_history_write_rolls_back_approval(self):
        risk = make_risk()

        with patch.object(RiskScoringSnapshot.objects, "create", side_effect=DatabaseError("disk full")):
            with self.assertRaises(DatabaseError):
                ApprovalWorkflow().approve(Risk.objects.get(pk=risk.pk), ScoreInputs(3, 3, 3, 2))

        risk.refresh_from_db()
        self.assertEqual(risk.status, Risk.STATUS_PROPOSED)
        self.assertEqual(risk.calculated_score, 3)


class SuggestApprovalScoresTests(TestCase):
    def test_wizard_impact_applies_to_cia(self):
        risk = make_risk(wizard_data={"impact": 4, "likelihood": 2})
        self.assertEqual(suggest_approval_scores(risk), ScoreInputs(4, 4, 4, 2))

    def test_impact_level_key_is_accepted(self):
        risk = make_risk(wizard_data={"impactLevel": "5"}, likelihood=3)
        self.assertEqual(suggest_approval_scores(risk), ScoreInputs(5, 5, 5, 3))

    def test_falls_back_to_risk_ratings(self):
        risk = make_risk(confidentiality_score=2, integrity_score=3, availability_score=4, likelihood=5)
        self.assertEqual(suggest_approval_scores(risk), ScoreInputs(2, 3, 4, 5))
        risk.wizard_data = ["not", "a", "mapping"]
        self.assertEqual(suggest_approval_scores(risk), ScoreInputs(2, 3, 4, 5))


class MergeWorkflowTests(TestCase):
    def setUp(self):
        self.target = make_risk(
            title="Legacy VPN exposure",
            status=Risk.STATUS_ACTIVE,
            confidentiality_score=4,
            integrity_score=4,
            availability_score=4,
            likelihood=3,
        )
        self.source = make_risk()

    def test_merge_into_active_target(self):
        target_before = Risk.objects.values().get(pk=self.target.pk)

        source = MergeWorkflow().merge(self.source, self.target.pk, actor="reviewer")

        source.refresh_from_db()
        self.assertEqual(source.status, Risk.STATUS_MERGED)
        self.assertEqual(source.merged_into_id, self.target.pk)
        self.assertEqual(Risk.objects.values().get(pk=self.target.pk), target_before)
        self.assertEqual(list(self.target.merged_risks.all()), [source])

    def test_target_must_be_active(self):
        other = make_risk(title="Another proposal")
        with self.assertRaises(ValidationError):
            MergeWorkflow().merge(self.source, other.pk)
        self.source.refresh_from_db()
        self.assertEqual(self.source.status, Risk.STATUS_PROPOSED)

    def test_cannot_merge_into_itself(self):
        with self.assertRaises(ValidationError):
            MergeWorkflow().merge(self.source, self.source.pk)

    def test_missing_target_id(self):
        with self.assertRaises(ValidationError):
            MergeWorkflow().merge(self.source, None)

    def test_unknown_target(self):
        with self.assertRaises(RiskNotFound) as ctx:
            MergeWorkflow().merge(self.source, 999999)
        self.assertEqual(ctx.exception.risk_id, 999999)
        self.source.refresh_from_db()
        self.assertIsNone(self.source.merged_into_id)

    def test_source_must_be_proposed(self):
        with self.assertRaises(InvalidTransition):
            MergeWorkflow().merge(self.target, self.source.pk)


class ArchiveRiskTests(TestCase):
    def test_archive_keeps_status_and_provenance(self):
        risk = make_risk(status=Risk.STATUS_REJECTED, rejection_reason="Duplicate")

        risk = archive_risk(risk)

        risk.refresh_from_db()
        self.assertTrue(risk.archived)
        self.assertIsNotNone(risk.archived_date)
        self.assertEqual(risk.status, Risk.STATUS_REJECTED)
        self.assertEqual(risk.rejection_reason, "Duplicate")

    def test_archive_twice_keeps_first_date(self):
        risk = archive_risk(make_risk(status=Risk.STATUS_ACTIVE))
        first_date = risk.archived_date
        risk = archive_risk(risk)
        self.assertEqual(risk.archived_date, first_date)

    def test_archiving_stale_copy_keeps_approved_scores(self):
        risk = make_risk()
        stale = Risk.objects.get(pk=risk.pk)
        ApprovalWorkflow().approve(risk, ScoreInputs(5, 5, 5, 5))

        archive_risk(stale)

        risk.refresh_from_db()
        self.assertTrue(risk.archived)
        self.assertEqual(risk.status, Risk.STATUS_ACTIVE)
        self.assertEqual(risk.calculated_score, 75)
        self.assertEqual(risk.risk_level, LEVEL_HIGH)
        self.assertEqual(risk.likelihood, 5)


class DjangoRiskStoreTests(TestCase):
    def test_get_missing_or_invalid_id(self):
        store = DjangoRiskStore()
        self.assertIsNone(store.get(123456))
        self.assertIsNone(store.get("abc"))
        self.assertIsNone(store.get(None))

    def test_find_page_orders_by_score(self):
        low = make_risk(title="Low", likelihood=1)
        high = make_risk(title="High", confidentiality_score=5, integrity_score=5, availability_score=5, likelihood=5)

        page = DjangoRiskStore().find_page({"status": Risk.STATUS_PROPOSED}, 1, 10)

        self.assertEqual(page.items, [high, low])
        self.assertEqual(page.total_pages, 1)

    def test_page_past_the_end_is_empty(self):
        make_risk()
        page = DjangoRiskStore().find_page({}, 5, 10)
        self.assertEqual(page.items, [])
        self.assertEqual(page.total_pages, 1)

    def test_save_with_stale_status_changes_nothing(self):
        risk = make_risk()
        Risk.objects.filter(pk=risk.pk).update(status=Risk.STATUS_ACTIVE)

        with self.assertRaises(InvalidTransition):
            DjangoRiskStore().save(
                risk,
                {"status": Risk.STATUS_REJECTED, "rejection_reason": "late"},
                expected_status=Risk.STATUS_PROPOSED,
            )

        risk.refresh_from_db()
        self.assertEqual(risk.status, Risk.STATUS_ACTIVE)
        self.assertEqual(risk.rejection_reason, "")

    def test_failed_write_leaves_instance_untouched(self):
        risk = make_risk()

        with self.assertRaises(IntegrityError):
            DjangoRiskStore().save(risk, {"status": Risk.STATUS_REJECTED})

        self.assertEqual(risk.status, Risk.STATUS_PROPOSED)
        self.assertEqual(Risk.objects.get(pk=risk.pk).status, Risk.STATUS_PROPOSED)

    def test_partial_write_leaves_score_columns_alone(self):
        risk = make_risk(likelihood=4)
        stale = Risk.objects.get(pk=risk.pk)
        Risk.objects.filter(pk=risk.pk).update(likelihood=5, calculated_score=15, risk_level=LEVEL_MEDIUM)

        DjangoRiskStore().save(stale, {"archived": True})

        row = Risk.objects.values("likelihood", "calculated_score", "risk_level", "archived").get(pk=risk.pk)
        self.assertEqual(row, {"likelihood": 5, "calculated_score": 15, "risk_level": LEVEL_MEDIUM, "archived": True})
