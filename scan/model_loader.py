"""
model_loader.py — process-scoped model loading service

Loads the face models once per process and reports progress so the UI can
draw a loading bar while the scan screen waits:

    idle ──init()──▶ loading (10%) ──▶ … ──▶ ready (100%)
                          └──────────────▶ error

Bundles (default):
    - face_detector : mediapipe FaceDetection (single face)
    - age_net       : OpenCV DNN Caffe age classifier   (age_deploy.prototxt / age_net.caffemodel)
    - gender_net    : OpenCV DNN Caffe gender classifier (gender_deploy.prototxt / gender_net.caffemodel)
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import cv2
import mediapipe as mp

import config
from errors import ModelLoadFailure, ModelNotReady

logger = logging.getLogger(__name__)

PROGRESS_START = 10


class ModelStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


@dataclass(frozen=True)
class ModelBundle:
    name: str
    load: Callable[[Path], Any]


# ===================================================================================
# 1) DEFAULT BUNDLE LOADERS (blocking, run in a worker thread)
# ===================================================================================

def _load_face_detector(model_dir: Path):
    return mp.solutions.face_detection.FaceDetection(
        model_selection=1,
        min_detection_confidence=config.DETECTION_MIN_CONFIDENCE,
    )


def _load_caffe(prototxt: str, weights: str) -> Callable[[Path], Any]:
    def _load(model_dir: Path):
        proto_path = model_dir / prototxt
        weights_path = model_dir / weights
        for path in (proto_path, weights_path):
            if not path.exists():
                raise FileNotFoundError(f"missing model file: {path}")
        return cv2.dnn.readNetFromCaffe(str(proto_path), str(weights_path))

    return _load


DEFAULT_BUNDLES = (
    ModelBundle("face_detector", _load_face_detector),
    ModelBundle("age_net", _load_caffe("age_deploy.prototxt", "age_net.caffemodel")),
    ModelBundle("gender_net", _load_caffe("gender_deploy.prototxt", "gender_net.caffemodel")),
)


# ===================================================================================
# 2) SERVICE
# ===================================================================================

class ModelLoader:
    """
    Owns the loaded models for the lifetime of the process.

    init() is idempotent: concurrent callers share the same load, and a
    finished load is not repeated. After an error, calling init() again
    retries from scratch.
    """

    def __init__(self, bundles=DEFAULT_BUNDLES, model_dir: Optional[Path] = None):
        self._bundles = tuple(bundles)
        self._model_dir = Path(model_dir) if model_dir is not None else config.MODEL_DIR
        self._models: Dict[str, Any] = {}
        self._status = ModelStatus.IDLE
        self._progress = 0
        self._error: Optional[str] = None
        self._task: Optional[asyncio.Task] = None
        self._listeners: List[Callable[[int], None]] = []

    # ---------------- state ----------------
    def status(self) -> ModelStatus:
        return self._status

    @property
    def progress(self) -> int:
        return self._progress

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def is_ready(self) -> bool:
        return self._status is ModelStatus.READY

    def on_progress(self, callback: Callable[[int], None]) -> Callable[[], None]:
        """Register a progress listener. Returns a function that unregisters it."""
        self._listeners.append(callback)
        return lambda: self._listeners.remove(callback) if callback in self._listeners else None

    def _set_progress(self, value: int) -> None:
        # never moves backwards while a load is running
        value = max(self._progress, min(100, value))
        if value == self._progress:
            return
        self._progress = value
        for callback in list(self._listeners):
            callback(value)

    # ---------------- lifecycle ----------------
    async def init(self) -> None:
        """Load every bundle. Raises ModelLoadFailure if any of them fails."""
        if self._status is ModelStatus.READY:
            return
        if self._task is None or self._task.done():
            self._task = asyncio.ensure_future(self._load_all())
        await asyncio.shield(self._task)

    async def _load_all(self) -> None:
        self._status = ModelStatus.LOADING
        self._error = None
        self._progress = 0
        self._set_progress(PROGRESS_START)
        logger.info("Loading %d face model bundle(s) from %s", len(self._bundles), self._model_dir)

        total = len(self._bundles)
        try:
            for i, bundle in enumerate(self._bundles, start=1):
                self._models[bundle.name] = await asyncio.to_thread(bundle.load, self._model_dir)
                self._set_progress(PROGRESS_START + round((100 - PROGRESS_START) * i / total))
                logger.info("Model bundle '%s' loaded (%d%%)", bundle.name, self._progress)
        except Exception as e:
            self._release_models()
            self._status = ModelStatus.ERROR
            self._error = f"Failed to load face models: {e}"
            logger.error("Model loading failed: %s", e)
            raise ModelLoadFailure(self._error) from e

        self._set_progress(100)
        self._status = ModelStatus.READY

    def get(self, name: str) -> Any:
        if self._status is not ModelStatus.READY:
            raise ModelNotReady(f"models are not ready (status={self._status.value})")
        return self._models[name]

    def _release_models(self) -> None:
        for model in self._models.values():
            close = getattr(model, "close", None)
            if callable(close):
                close()
        self._models.clear()

    def dispose(self) -> None:
        """Drop loaded models and go back to idle."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        self._release_models()
        self._status = ModelStatus.IDLE
        self._progress = 0
        self._error = None
