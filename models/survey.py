"""
survey.py — request / result schemas shared by the analyzers, the scan
controller and the routers.

JSON field names follow the web client (camelCase); Python code uses
snake_case attributes.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from analyzers.survey_scoring import validate_age


class _Schema(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ===================================================================================
# 🔹 Questionnaire
# ===================================================================================
class SurveyAnswers(_Schema):
    """One completed questionnaire. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    sleep_hours: Optional[str] = None
    exercise_frequency: Optional[str] = None
    diet_quality: Optional[str] = None
    water_intake: Optional[str] = None
    stress_level: Optional[int] = Field(default=None, ge=1, le=10)
    actual_age: int

    @field_validator("sleep_hours", "exercise_frequency", "diet_quality", "water_intake", mode="before")
    @classmethod
    def _bucket_as_str(cls, v):
        # buckets like 7 / "7" are the same answer
        if v is None or isinstance(v, str):
            return v
        return str(v)

    @field_validator("actual_age", mode="before")
    @classmethod
    def _check_age(cls, v):
        return validate_age(v)


# ===================================================================================
# 🔹 Face analysis
# ===================================================================================
class FaceAnalysisResult(_Schema):
    predicted_age: int = Field(ge=0)
    gender: Optional[str] = None
    gender_probability: Optional[float] = None
    face_score: int = Field(ge=20, le=100)


# ===================================================================================
# 🔹 Result
# ===================================================================================
class Recommendation(_Schema):
    id: str
    title: str
    description: str
    icon: str
    priority: Literal["high", "medium", "low"]


class SurveyResult(_Schema):
    biological_age: int
    actual_age: int
    difference: int
    score: int = Field(ge=0, le=100)
    recommendations: List[Recommendation] = Field(default_factory=list)


class ScanOutcome(_Schema):
    """What the scan hands over to the result view."""

    result: SurveyResult
    face: Optional[FaceAnalysisResult] = None
    lifestyle_score: int
    face_score: int
    fallback: bool = False
    warning: Optional[str] = None
