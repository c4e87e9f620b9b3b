"""
survey_scoring.py — lifestyle questionnaire → lifestyle score (0..100)

Concept:
    - 4 multiple-choice questions (sleep / exercise / diet / water) map through
      fixed lookup tables to a sub-score 20..100
    - stress level 1..10 is inverted: (11 - stress) * 10 → 10..100
    - lifestyle score = mean of the 5 sub-scores, rounded half-up
    - unknown or missing answers count as 50, the scorer never raises

Public API:
    - compute_lifestyle_score(answers) -> int
    - lifestyle_breakdown(answers) -> dict[str, int]
    - validate_age(raw) -> int
    - SURVEY_QUESTIONS
"""

import math
from typing import Any, Dict, Mapping

from errors import InvalidSurveyInput

DEFAULT_SUB_SCORE = 50

AGE_MIN = 1
AGE_MAX = 120

STRESS_MIN = 1
STRESS_MAX = 10


# ===================================================================================
# 1) QUESTION CATALOGUE
#    value → (label, sub-score); the web client renders the same table
# ===================================================================================

SURVEY_QUESTIONS = [
    {
        "id": "sleepHours",
        "title": "Average sleep per night",
        "subtitle": "Enough sleep is essential for cell regeneration",
        "type": "select",
        "options": [
            {"value": "4", "label": "Under 4 hours", "score": 20},
            {"value": "5", "label": "4-5 hours", "score": 40},
            {"value": "6", "label": "5-6 hours", "score": 60},
            {"value": "7", "label": "7-8 hours", "score": 100},
            {"value": "9", "label": "9 hours or more", "score": 70},
        ],
    },
    {
        "id": "exerciseFrequency",
        "title": "Workouts per week",
        "subtitle": "Regular exercise slows cellular ageing",
        "type": "select",
        "options": [
            {"value": "0", "label": "Almost never", "score": 20},
            {"value": "1", "label": "1-2 times", "score": 50},
            {"value": "3", "label": "3-4 times", "score": 90},
            {"value": "5", "label": "5 times or more", "score": 100},
        ],
    },
    {
        "id": "dietQuality",
        "title": "Processed food / fast food",
        "subtitle": "Diet has a direct effect on inflammation",
        "type": "select",
        "options": [
            {"value": "daily", "label": "Every day", "score": 20},
            {"value": "often", "label": "4-5 times a week", "score": 40},
            {"value": "sometimes", "label": "2-3 times a week", "score": 70},
            {"value": "rarely", "label": "Almost never", "score": 100},
        ],
    },
    {
        "id": "waterIntake",
        "title": "Water per day",
        "subtitle": "Hydration keeps skin elastic",
        "type": "select",
        "options": [
            {"value": "500", "label": "Under 500ml", "score": 20},
            {"value": "1000", "label": "500ml-1L", "score": 50},
            {"value": "1500", "label": "1L-1.5L", "score": 80},
            {"value": "2000", "label": "2L or more", "score": 100},
        ],
    },
    {
        "id": "stressLevel",
        "title": "Stress level",
        "subtitle": "Chronic stress accelerates cellular ageing",
        "type": "slider",
        "min": STRESS_MIN,
        "max": STRESS_MAX,
    },
]

# question id → {bucket: sub-score}
SCORE_MAP: Dict[str, Dict[str, int]] = {
    q["id"]: {opt["value"]: opt["score"] for opt in q["options"]}
    for q in SURVEY_QUESTIONS
    if q["type"] == "select"
}

_ATTRS = {
    "sleepHours": "sleep_hours",
    "exerciseFrequency": "exercise_frequency",
    "dietQuality": "diet_quality",
    "waterIntake": "water_intake",
    "stressLevel": "stress_level",
}


# ===================================================================================
# 2) HELPERS
# ===================================================================================

def round_half_up(x: float) -> int:
    """Round like the web client does (x.5 always goes up), not banker's rounding."""
    return int(math.floor(x + 0.5))


def _answer(answers: Any, key: str):
    """Read one answer from a SurveyAnswers model or a plain dict (camel or snake keys)."""
    attr = _ATTRS[key]
    if isinstance(answers, Mapping):
        value = answers.get(key)
        if value is None:
            value = answers.get(attr)
        return value
    return getattr(answers, attr, None)


def _stress_sub_score(stress) -> int:
    if stress is None or isinstance(stress, bool):
        return DEFAULT_SUB_SCORE
    try:
        level = int(stress)
    except (TypeError, ValueError):
        return DEFAULT_SUB_SCORE
    level = min(max(level, STRESS_MIN), STRESS_MAX)
    return (11 - level) * 10


# ===================================================================================
# 3) PUBLIC API
# ===================================================================================

def lifestyle_breakdown(answers: Any) -> Dict[str, int]:
    """Sub-score per question, keyed by question id."""
    if answers is None:
        answers = {}

    breakdown = {}
    for key, table in SCORE_MAP.items():
        value = _answer(answers, key)
        breakdown[key] = table.get(str(value), DEFAULT_SUB_SCORE) if value is not None else DEFAULT_SUB_SCORE
    breakdown["stressLevel"] = _stress_sub_score(_answer(answers, "stressLevel"))
    return breakdown


def compute_lifestyle_score(answers: Any) -> int:
    """
    Lifestyle score 0..100 from questionnaire answers.

    sleep=7, exercise=5, diet=rarely, water=2000, stress=1  → 100
    sleep=4, exercise=0, diet=daily,  water=500,  stress=10 → 18
    """
    subs = lifestyle_breakdown(answers)
    return round_half_up(sum(subs.values()) / len(subs))


def validate_age(raw) -> int:
    """
    Validate the self-reported age field. Only whole numbers 1..120 pass.
    Raises InvalidSurveyInput with the message to show under the input.
    """
    if raw is None:
        raise InvalidSurveyInput("Please enter your age")
    if isinstance(raw, bool):
        raise InvalidSurveyInput("Please enter numbers only")

    if isinstance(raw, int):
        age = raw
    elif isinstance(raw, float):
        if not raw.is_integer():
            raise InvalidSurveyInput("Please enter numbers only")
        age = int(raw)
    else:
        text = str(raw).strip()
        if not text:
            raise InvalidSurveyInput("Please enter your age")
        if not (text.isascii() and text.isdigit()):
            raise InvalidSurveyInput("Please enter numbers only")
        age = int(text)

    if age < AGE_MIN or age > AGE_MAX:
        raise InvalidSurveyInput(f"Please enter an age between {AGE_MIN} and {AGE_MAX}")
    return age
