import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, field_validator

from analyzers.face_age import FaceAgeAdapter, decode_image
from analyzers.survey_scoring import validate_age
from errors import InvalidImage, ModelLoadFailure
from models.survey import SurveyAnswers
from routers.deps import get_adapter, get_loader
from scan.controller import ScanController
from scan.model_loader import ModelLoader

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/scan", tags=["scan"])


# ===================================================================================
# 🔹 Payloads from FE (images are base64 / data URLs)
# ===================================================================================
class FaceAnalyzePayload(BaseModel):
    image: str
    actual_age: int

    @field_validator("actual_age", mode="before")
    @classmethod
    def _check_age(cls, v):
        return validate_age(v)


class ScanResultPayload(BaseModel):
    answers: SurveyAnswers
    image: str


def _decode_or_400(b64: str):
    try:
        return decode_image(b64)
    except InvalidImage as e:
        raise HTTPException(status_code=400, detail=str(e))


# ===================================================================================
# 🔹 Model status (loading bar)
# ===================================================================================
@router.get("/models")
def model_status(loader: ModelLoader = Depends(get_loader)):
    return {
        "status": loader.status().value,
        "progress": loader.progress,
        "error": loader.error,
    }


# ===================================================================================
# 🔹 Face only
# ===================================================================================
@router.post("/analyze-face")
async def analyze_face(
    payload: FaceAnalyzePayload,
    loader: ModelLoader = Depends(get_loader),
    adapter: FaceAgeAdapter = Depends(get_adapter),
):
    img = _decode_or_400(payload.image)

    try:
        await loader.init()
    except ModelLoadFailure as e:
        logger.warning("analyze-face without models: %s", e)

    face = await adapter.estimate_face_score(img, payload.actual_age)
    if face is None:
        return {"detected": False, "face": None}
    return {"detected": True, "face": face.model_dump(by_alias=True)}


# ===================================================================================
# 🔹 Full result (upload path of the scan flow)
# ===================================================================================
@router.post("/result")
async def scan_result(
    payload: ScanResultPayload,
    loader: ModelLoader = Depends(get_loader),
    adapter: FaceAgeAdapter = Depends(get_adapter),
):
    img = _decode_or_400(payload.image)

    controller = ScanController(payload.answers, loader, adapter, camera=None)
    try:
        await controller.start()
        outcome = await controller.upload(img)
    finally:
        controller.close()
    return outcome.model_dump(by_alias=True)
