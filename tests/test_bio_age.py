"""
Tests for the composite score / biological age calculator.

Run with: pytest tests/test_bio_age.py -v
"""

import pytest

import config
from analyzers.bio_age import (
    biological_age,
    composite_score,
    compute_result,
    select_recommendations,
)
from analyzers.face_age import face_score_from_difference


class TestCompositeScore:
    def test_weights_sum_to_one(self):
        assert config.LIFESTYLE_WEIGHT + config.FACE_WEIGHT == pytest.approx(1.0)

    @pytest.mark.parametrize("lifestyle,face,expected", [
        (50, 50, 50),
        (100, 100, 100),
        (0, 20, 14),
        (80, 94, 90),
        (85, 75, 78),
    ])
    def test_weighted_blend(self, lifestyle, face, expected):
        assert composite_score(lifestyle, face) == expected

    def test_always_in_range(self):
        for lifestyle in range(0, 101, 5):
            for face in range(20, 101, 5):
                score = composite_score(lifestyle, face)
                assert isinstance(score, int)
                assert 0 <= score <= 100


class TestBiologicalAge:
    def test_good_lifestyle_lowers_age(self):
        # correction = (80 - 50) / 50 * 3 = 1.8
        assert biological_age(80, 28) == 26

    def test_neutral_lifestyle_keeps_predicted_age(self):
        assert biological_age(50, 44) == 44

    def test_poor_lifestyle_raises_age(self):
        # correction = -2.4
        assert biological_age(10, 40) == 42

    def test_never_below_18(self):
        assert biological_age(100, 5) == 18
        assert biological_age(0, 0) == 18

    def test_capped_at_120(self):
        assert biological_age(0, 150) == 120


class TestComputeResult:
    def test_end_to_end_example(self):
        face = face_score_from_difference(35 - 28)
        assert face == 94

        result = compute_result(80, face, 28, 35)
        assert result.score == 90
        assert result.biological_age == 26
        assert result.actual_age == 35
        assert result.difference == 9

    def test_young_child_prediction_is_clamped(self):
        result = compute_result(100, 100, 5, 10)
        assert result.biological_age == 18
        assert result.difference == 10 - 18

    @pytest.mark.parametrize("lifestyle,face,predicted,actual", [
        (18, 20, 90, 40),
        (100, 100, 19, 60),
        (50, 70, 33, 33),
        (0, 20, 1, 1),
        (64, 88, 120, 120),
    ])
    def test_difference_identity(self, lifestyle, face, predicted, actual):
        result = compute_result(lifestyle, face, predicted, actual)
        assert result.difference == result.actual_age - result.biological_age
        assert result.biological_age >= 18
        assert 0 <= result.score <= 100

    def test_result_carries_three_recommendations(self):
        result = compute_result(80, 94, 28, 35)
        assert len(result.recommendations) == 3


class TestRecommendations:
    def test_default_order_when_nothing_is_weak(self):
        picked = select_recommendations({"dietQuality": 100, "exerciseFrequency": 90, "waterIntake": 80})
        assert [r.id for r in picked] == ["1", "2", "3"]

    def test_no_breakdown_uses_catalogue_order(self):
        assert [r.id for r in select_recommendations()] == ["1", "2", "3"]

    def test_weak_areas_come_first(self):
        picked = select_recommendations({"exerciseFrequency": 20, "waterIntake": 20})
        assert [r.id for r in picked] == ["3", "4", "1"]

    def test_weak_areas_sorted_by_priority(self):
        picked = select_recommendations({"waterIntake": 50, "dietQuality": 20, "exerciseFrequency": 50})
        assert [r.id for r in picked] == ["2", "3", "4"]
        assert picked[0].priority == "high"

    def test_limit(self):
        assert len(select_recommendations({}, limit=5)) == 5
        assert len(select_recommendations({}, limit=1)) == 1
