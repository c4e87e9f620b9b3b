# ==================================================================================================
# main.py — Biological Age Estimator backend
# --------------------------------------------------------------------------------------------------
# survey → face scan → result. The face models are loaded once per process at startup;
# requests that arrive before they are ready still get a (labelled fallback) result.
# ==================================================================================================

import asyncio
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import config
from analyzers.face_age import FaceAgeAdapter, OpenCVAgeGenderDetector
from errors import ModelLoadFailure
from routers.scan_router import router as scan_router
from routers.survey_router import router as survey_router
from scan.model_loader import ModelLoader

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("bioage")


# ===================================================================================
# 🔹 DEBUG: list model files
# ===================================================================================
def _log_model_dir():
    if not config.MODEL_DIR.exists():
        logger.warning("MODEL_DIR %s does not exist", config.MODEL_DIR)
        return
    for root, dirs, files in os.walk(config.MODEL_DIR):
        logger.info("model dir %s: %s", root, files)


def _log_load_result(task: asyncio.Task):
    if task.cancelled():
        return
    exc = task.exception()
    if isinstance(exc, ModelLoadFailure):
        logger.warning("Face models unavailable, scans will use upload fallback: %s", exc)
    elif exc is not None:
        logger.error("Unexpected error while loading face models: %r", exc)


# ===================================================================================
# 🔹 Startup / shutdown
# ===================================================================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    _log_model_dir()

    loader = ModelLoader()
    app.state.model_loader = loader
    app.state.face_adapter = FaceAgeAdapter(OpenCVAgeGenderDetector(loader))

    load_task = asyncio.create_task(loader.init())
    load_task.add_done_callback(_log_load_result)

    yield

    loader.dispose()


# ===================================================================================
# 🔹 FastAPI + Routers
# ===================================================================================
app = FastAPI(title="Biological Age Estimator", version="1.0.0", lifespan=lifespan)

app.include_router(survey_router)
app.include_router(scan_router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def root():
    return {"message": "Biological age backend running OK."}


# ===================================================================================
# 🔹 Local run
# ===================================================================================
if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=False)
