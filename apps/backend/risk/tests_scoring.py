import itertools

from django.test import SimpleTestCase

from risk.services.scoring import (
    LEVEL_HIGH,
    LEVEL_LOW,
    LEVEL_MEDIUM,
    ScoreInputs,
    ScoreResult,
    clamp_score,
    compute_optional_score,
    compute_score,
    risk_level_for,
)


class ClampScoreTests(SimpleTestCase):
    def test_in_range_values_are_kept(self):
        for value in range(1, 6):
            self.assertEqual(clamp_score(value), value)

    def test_out_of_range_values_are_pinned(self):
        self.assertEqual(clamp_score(0), 1)
        self.assertEqual(clamp_score(-4), 1)
        self.assertEqual(clamp_score(6), 5)
        self.assertEqual(clamp_score(99), 5)

    def test_unusable_values_become_minimum(self):
        for value in (None, "abc", "", float("nan"), float("inf"), float("-inf"), True, object()):
            self.assertEqual(clamp_score(value), 1, value)

    def test_numeric_strings_and_floats_are_truncated(self):
        self.assertEqual(clamp_score("4"), 4)
        self.assertEqual(clamp_score(3.9), 3)
        self.assertEqual(clamp_score("2.5"), 2)


class RiskLevelTests(SimpleTestCase):
    def test_bucket_boundaries(self):
        self.assertEqual(risk_level_for(3), LEVEL_LOW)
        self.assertEqual(risk_level_for(14), LEVEL_LOW)
        self.assertEqual(risk_level_for(15), LEVEL_MEDIUM)
        self.assertEqual(risk_level_for(35), LEVEL_MEDIUM)
        self.assertEqual(risk_level_for(36), LEVEL_HIGH)
        self.assertEqual(risk_level_for(75), LEVEL_HIGH)


class ComputeScoreTests(SimpleTestCase):
    def test_known_scores(self):
        self.assertEqual(compute_score(1, 1, 1, 1), ScoreResult(score=3, level=LEVEL_LOW))
        self.assertEqual(compute_score(3, 3, 3, 2), ScoreResult(score=18, level=LEVEL_MEDIUM))
        self.assertEqual(compute_score(5, 5, 5, 3), ScoreResult(score=45, level=LEVEL_HIGH))
        self.assertEqual(compute_score(5, 5, 5, 5), ScoreResult(score=75, level=LEVEL_HIGH))

    def test_inputs_are_clamped_before_scoring(self):
        self.assertEqual(compute_score(9, 0, "x", 7).score, (5 + 1 + 1) * 5)

    def test_every_rating_combination(self):
        ratings = range(1, 6)
        for c, i, a, likelihood in itertools.product(ratings, ratings, ratings, ratings):
            result = compute_score(c, i, a, likelihood)
            expected = (c + i + a) * likelihood
            self.assertEqual(result.score, expected, (c, i, a, likelihood))
            if expected >= 36:
                self.assertEqual(result.level, LEVEL_HIGH)
            elif expected >= 15:
                self.assertEqual(result.level, LEVEL_MEDIUM)
            else:
                self.assertEqual(result.level, LEVEL_LOW)

    def test_score_inputs_helpers(self):
        inputs = ScoreInputs.clamped(7, 2, None, "3")
        self.assertEqual(inputs, ScoreInputs(confidentiality=5, integrity=2, availability=1, likelihood=3))
        self.assertEqual(inputs.compute(), ScoreResult(score=24, level=LEVEL_MEDIUM))


class ComputeOptionalScoreTests(SimpleTestCase):
    def test_any_missing_rating_yields_none(self):
        self.assertIsNone(compute_optional_score(2, 2, 2, None))
        self.assertIsNone(compute_optional_score(None, None, None, None))

    def test_complete_ratings_are_scored(self):
        self.assertEqual(compute_optional_score(2, 2, 2, 2), ScoreResult(score=12, level=LEVEL_LOW))
