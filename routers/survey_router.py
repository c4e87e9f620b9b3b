from typing import Union

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from analyzers.bio_age import select_recommendations
from analyzers.survey_scoring import (
    SURVEY_QUESTIONS,
    compute_lifestyle_score,
    lifestyle_breakdown,
    validate_age,
)
from errors import InvalidSurveyInput
from models.survey import SurveyAnswers

router = APIRouter(prefix="/survey", tags=["survey"])


class AgeInput(BaseModel):
    age: Union[int, str, None] = None


# 1) Questions shown by the wizard
@router.get("/questions")
def get_questions():
    return SURVEY_QUESTIONS


# 2) Age field check (called while the user types)
@router.post("/validate-age")
def check_age(payload: AgeInput):
    try:
        age = validate_age(payload.age)
    except InvalidSurveyInput as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"valid": True, "age": age}


# 3) Lifestyle score only (no face scan yet)
@router.post("/score")
def score_survey(answers: SurveyAnswers):
    breakdown = lifestyle_breakdown(answers)
    return {
        "lifestyleScore": compute_lifestyle_score(answers),
        "breakdown": breakdown,
        "recommendations": [
            r.model_dump(by_alias=True) for r in select_recommendations(breakdown)
        ],
    }
