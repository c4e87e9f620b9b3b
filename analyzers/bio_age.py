"""
bio_age.py — lifestyle score + face score → health score & biological age

Concept:
    - composite (health) score = lifestyle * LIFESTYLE_WEIGHT + face * FACE_WEIGHT
      (0.3 / 0.7 by default, see config.py), rounded half-up, 0..100
    - biological age is anchored on the AI-predicted age and nudged by lifestyle:
          correction = (lifestyle - 50) / 50 * 3        → -3 .. +3 years
          biological = round(predicted - correction)    → clamped BIO_AGE_MIN..BIO_AGE_MAX
    - difference = actual - biological  (positive = younger than your age)

Public API:
    - composite_score(lifestyle_score, face_score) -> int
    - biological_age(lifestyle_score, predicted_age) -> int
    - compute_result(lifestyle_score, face_score, predicted_age, actual_age, breakdown=None) -> SurveyResult
    - select_recommendations(breakdown, limit=3) -> list[Recommendation]
"""

from typing import Dict, List, Optional

import config
from analyzers.survey_scoring import round_half_up
from models.survey import Recommendation, SurveyResult

SCORE_MIN = 0
SCORE_MAX = 100

# sub-score below this marks a survey area as "needs work"
WEAK_AREA_THRESHOLD = 70


# ===================================================================================
# 1) SCORE + AGE
# ===================================================================================

def composite_score(lifestyle_score: float, face_score: float) -> int:
    blended = lifestyle_score * config.LIFESTYLE_WEIGHT + face_score * config.FACE_WEIGHT
    return max(SCORE_MIN, min(SCORE_MAX, round_half_up(blended)))


def biological_age(lifestyle_score: float, predicted_age: float) -> int:
    correction = (lifestyle_score - 50) / 50 * config.LIFESTYLE_CORRECTION_YEARS
    age = round_half_up(predicted_age - correction)
    return max(config.BIO_AGE_MIN, min(config.BIO_AGE_MAX, age))


# ===================================================================================
# 2) RECOMMENDATIONS (static catalogue)
# ===================================================================================

# area = survey question the tip addresses, None = general advice
RECOMMENDATION_CATALOGUE = [
    (None, Recommendation(
        id="1", title="Vitamin D",
        description="Take 2000 IU of vitamin D a day to support cell renewal and immunity.",
        icon="pill", priority="high",
    )),
    ("dietQuality", Recommendation(
        id="2", title="Intermittent fasting",
        description="Try 16:8 intermittent fasting to trigger autophagy and slow ageing.",
        icon="clock", priority="high",
    )),
    ("exerciseFrequency", Recommendation(
        id="3", title="More cardio",
        description="Walk or jog for 30 minutes at least 3 times a week to improve heart and lung health.",
        icon="activity", priority="medium",
    )),
    ("waterIntake", Recommendation(
        id="4", title="Drink more water",
        description="Drink at least 2L of water a day for skin elasticity and detox.",
        icon="droplets", priority="medium",
    )),
    (None, Recommendation(
        id="5", title="Sun protection",
        description="Use SPF 50+ sunscreen every day to prevent photo-ageing.",
        icon="sun", priority="low",
    )),
]

_PRIORITY_ORDER = {"high": 0, "medium": 1, "low": 2}


def select_recommendations(breakdown: Optional[Dict[str, int]] = None, limit: int = 3) -> List[Recommendation]:
    """
    Tips for weak survey areas first (by priority), then the catalogue order
    fills up the remaining slots.
    """
    breakdown = breakdown or {}
    weak = [
        rec for area, rec in RECOMMENDATION_CATALOGUE
        if area is not None and breakdown.get(area, SCORE_MAX) < WEAK_AREA_THRESHOLD
    ]
    weak.sort(key=lambda r: _PRIORITY_ORDER[r.priority])

    picked = weak[:limit]
    for _, rec in RECOMMENDATION_CATALOGUE:
        if len(picked) >= limit:
            break
        if rec not in picked:
            picked.append(rec)
    return picked


# ===================================================================================
# 3) RESULT
# ===================================================================================

def compute_result(
    lifestyle_score: float,
    face_score: float,
    predicted_age: float,
    actual_age: int,
    breakdown: Optional[Dict[str, int]] = None,
) -> SurveyResult:
    """
    Pure: no I/O, same inputs → same result.

    >>> r = compute_result(80, 94, 28, 35)
    >>> (r.score, r.biological_age, r.difference)
    (90, 26, 9)
    """
    score = composite_score(lifestyle_score, face_score)
    bio_age = biological_age(lifestyle_score, predicted_age)

    return SurveyResult(
        biological_age=bio_age,
        actual_age=actual_age,
        difference=actual_age - bio_age,
        score=score,
        recommendations=select_recommendations(breakdown),
    )
