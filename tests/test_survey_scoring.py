"""
Tests for the lifestyle questionnaire scorer and the age field validation.

Run with: pytest tests/test_survey_scoring.py -v
"""

import itertools

import pytest
from pydantic import ValidationError

from analyzers.survey_scoring import (
    SCORE_MAP,
    SURVEY_QUESTIONS,
    compute_lifestyle_score,
    lifestyle_breakdown,
    round_half_up,
    validate_age,
)
from errors import InvalidSurveyInput
from models.survey import SurveyAnswers


class TestLifestyleScore:
    """compute_lifestyle_score on complete answers."""

    def test_best_answers_score_100(self):
        answers = SurveyAnswers(
            sleep_hours="7", exercise_frequency="5", diet_quality="rarely",
            water_intake="2000", stress_level=1, actual_age=30,
        )
        assert lifestyle_breakdown(answers) == {
            "sleepHours": 100,
            "exerciseFrequency": 100,
            "dietQuality": 100,
            "waterIntake": 100,
            "stressLevel": 100,
        }
        assert compute_lifestyle_score(answers) == 100

    def test_worst_answers_score_18(self):
        answers = SurveyAnswers(
            sleep_hours="4", exercise_frequency="0", diet_quality="daily",
            water_intake="500", stress_level=10, actual_age=30,
        )
        assert sorted(lifestyle_breakdown(answers).values()) == [10, 20, 20, 20, 20]
        assert compute_lifestyle_score(answers) == 18

    def test_every_combination_is_an_int_in_range(self):
        buckets = [list(SCORE_MAP[q].keys()) for q in ("sleepHours", "exerciseFrequency", "dietQuality", "waterIntake")]
        for sleep, exercise, diet, water in itertools.product(*buckets):
            for stress in range(1, 11):
                score = compute_lifestyle_score({
                    "sleepHours": sleep,
                    "exerciseFrequency": exercise,
                    "dietQuality": diet,
                    "waterIntake": water,
                    "stressLevel": stress,
                })
                assert isinstance(score, int)
                assert 0 <= score <= 100

    def test_stress_is_inverted(self):
        low = compute_lifestyle_score({"stressLevel": 2})
        high = compute_lifestyle_score({"stressLevel": 9})
        assert low > high


class TestMissingAnswers:
    """Unknown or missing answers fall back to 50 instead of failing."""

    def test_empty_mapping_scores_50(self):
        assert compute_lifestyle_score({}) == 50

    def test_none_scores_50(self):
        assert compute_lifestyle_score(None) == 50

    def test_unknown_bucket_counts_as_50(self):
        breakdown = lifestyle_breakdown({"sleepHours": "12", "dietQuality": "never heard of it"})
        assert breakdown["sleepHours"] == 50
        assert breakdown["dietQuality"] == 50

    def test_snake_case_keys_and_int_buckets(self):
        breakdown = lifestyle_breakdown({"sleep_hours": 7, "water_intake": 2000})
        assert breakdown["sleepHours"] == 100
        assert breakdown["waterIntake"] == 100

    def test_model_without_stress_uses_default(self):
        answers = SurveyAnswers(actual_age=40)
        assert lifestyle_breakdown(answers)["stressLevel"] == 50

    def test_out_of_range_stress_is_clamped(self):
        assert lifestyle_breakdown({"stressLevel": 25})["stressLevel"] == 10
        assert lifestyle_breakdown({"stressLevel": -3})["stressLevel"] == 100

    def test_non_numeric_stress_counts_as_50(self):
        assert lifestyle_breakdown({"stressLevel": "a lot"})["stressLevel"] == 50


class TestRounding:
    def test_half_rounds_up(self):
        assert round_half_up(18.5) == 19
        assert round_half_up(17.5) == 18
        assert round_half_up(26.2) == 26
        assert round_half_up(-1.5) == -1


class TestValidateAge:
    @pytest.mark.parametrize("raw,expected", [(35, 35), ("35", 35), (" 7 ", 7), (1, 1), ("120", 120), (40.0, 40)])
    def test_accepts_whole_numbers_in_range(self, raw, expected):
        assert validate_age(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_empty_input(self, raw):
        with pytest.raises(InvalidSurveyInput, match="Please enter your age"):
            validate_age(raw)

    @pytest.mark.parametrize("raw", ["abc", "3a", "-5", "12.5", 12.5, True])
    def test_non_numeric_input(self, raw):
        with pytest.raises(InvalidSurveyInput, match="numbers only"):
            validate_age(raw)

    @pytest.mark.parametrize("raw", [0, "0", 121, "999"])
    def test_out_of_range(self, raw):
        with pytest.raises(InvalidSurveyInput, match="between 1 and 120"):
            validate_age(raw)


class TestSurveyAnswersModel:
    def test_camel_case_payload(self):
        answers = SurveyAnswers.model_validate({
            "sleepHours": "7",
            "exerciseFrequency": "5",
            "dietQuality": "rarely",
            "waterIntake": "2000",
            "stressLevel": 1,
            "actualAge": "42",
        })
        assert answers.actual_age == 42
        assert answers.sleep_hours == "7"

    def test_invalid_age_is_rejected(self):
        with pytest.raises(ValidationError) as exc:
            SurveyAnswers(actual_age=130)
        assert "between 1 and 120" in str(exc.value)

    def test_stress_out_of_range_is_rejected(self):
        with pytest.raises(ValidationError):
            SurveyAnswers(actual_age=30, stress_level=11)

    def test_answers_are_immutable(self):
        answers = SurveyAnswers(actual_age=30)
        with pytest.raises(ValidationError):
            answers.actual_age = 31


def test_question_catalogue_matches_score_map():
    selects = [q for q in SURVEY_QUESTIONS if q["type"] == "select"]
    assert [q["id"] for q in selects] == list(SCORE_MAP.keys())
    for q in selects:
        assert all(20 <= opt["score"] <= 100 for opt in q["options"])
