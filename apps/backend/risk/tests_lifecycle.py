from django.test import SimpleTestCase

from risk.models import Risk
from risk.services.exceptions import InvalidTransition
from risk.services.lifecycle import allowed_transitions, can_transition, ensure_transition, is_terminal


class LifecycleTests(SimpleTestCase):
    def test_proposed_can_be_decided(self):
        for target in (Risk.STATUS_ACTIVE, Risk.STATUS_REJECTED, Risk.STATUS_MERGED):
            self.assertTrue(can_transition(Risk.STATUS_PROPOSED, target))

    def test_decisions_require_proposed(self):
        for current in (Risk.STATUS_DRAFT, Risk.STATUS_ACTIVE, Risk.STATUS_REJECTED, Risk.STATUS_MERGED):
            for target in (Risk.STATUS_ACTIVE, Risk.STATUS_REJECTED, Risk.STATUS_MERGED):
                self.assertFalse(can_transition(current, target), (current, target))

    def test_archive_is_allowed_from_any_status(self):
        for current, _ in Risk.STATUS_CHOICES:
            self.assertTrue(can_transition(current, Risk.STATUS_ARCHIVED))

    def test_unknown_target_is_refused(self):
        self.assertFalse(can_transition(Risk.STATUS_PROPOSED, "DELETED"))

    def test_ensure_transition_raises_with_context(self):
        with self.assertRaises(InvalidTransition) as ctx:
            ensure_transition(Risk.STATUS_DRAFT, Risk.STATUS_ACTIVE)
        self.assertEqual(ctx.exception.current, Risk.STATUS_DRAFT)
        self.assertEqual(ctx.exception.requested, Risk.STATUS_ACTIVE)
        self.assertEqual(ctx.exception.code, "invalid_transition")

    def test_allowed_transitions(self):
        self.assertEqual(
            allowed_transitions(Risk.STATUS_PROPOSED),
            sorted([Risk.STATUS_ACTIVE, Risk.STATUS_REJECTED, Risk.STATUS_MERGED, Risk.STATUS_ARCHIVED]),
        )
        self.assertEqual(allowed_transitions(Risk.STATUS_ACTIVE), [Risk.STATUS_ARCHIVED])

    def test_terminal_statuses(self):
        self.assertFalse(is_terminal(Risk.STATUS_DRAFT))
        self.assertFalse(is_terminal(Risk.STATUS_PROPOSED))
        self.assertTrue(is_terminal(Risk.STATUS_MERGED))
