"""
controller.py — scan phase state machine

    MODEL_LOADING ──ready──▶ CAMERA_READY ──capture()──▶ CAPTURING ──▶ ANALYZING ──▶ COMPLETE
          │                       │                                       ▲
          │ load error            │ permission denied / no camera         │ upload()
          ▼                       ▼                                       │
          └──────────────▶ UPLOAD_FALLBACK ───────────────────────────────┘
                                  │ retry_camera()
                                  └──────────▶ CAMERA_READY

One controller per scan attempt. The phase machine is the only thing that
touches the camera and the models, so only one async operation is ever in
flight for a session.
"""

import asyncio
import logging
from enum import Enum
from typing import Callable, List, Optional

import config
from analyzers.bio_age import compute_result
from analyzers.face_age import FaceAgeAdapter, ImageInput
from analyzers.survey_scoring import compute_lifestyle_score, lifestyle_breakdown
from errors import CameraError, InvalidScanTransition, ModelLoadFailure
from models.survey import ScanOutcome, SurveyAnswers
from scan.camera import Camera, CameraSession, MediaStream
from scan.model_loader import ModelLoader

logger = logging.getLogger(__name__)


class ScanPhase(str, Enum):
    MODEL_LOADING = "model_loading"
    CAMERA_READY = "camera_ready"
    CAPTURING = "capturing"
    ANALYZING = "analyzing"
    COMPLETE = "complete"
    UPLOAD_FALLBACK = "upload_fallback"


_TRANSITIONS = {
    ScanPhase.MODEL_LOADING: {ScanPhase.CAMERA_READY, ScanPhase.UPLOAD_FALLBACK},
    ScanPhase.CAMERA_READY: {ScanPhase.CAPTURING, ScanPhase.UPLOAD_FALLBACK},
    ScanPhase.CAPTURING: {ScanPhase.ANALYZING, ScanPhase.UPLOAD_FALLBACK},
    ScanPhase.ANALYZING: {ScanPhase.COMPLETE},
    ScanPhase.UPLOAD_FALLBACK: {ScanPhase.ANALYZING, ScanPhase.CAMERA_READY},
    ScanPhase.COMPLETE: set(),
}

ANALYSIS_STAGES = (
    "Detecting face...",
    "Estimating facial age...",
    "Calculating final result...",
)

NO_FACE_WARNING = (
    "No face could be detected. This result is based on your survey answers "
    "and your actual age only."
)
NO_CAMERA_WARNING = "Camera is not available. Please upload a photo instead."

Listener = Callable[[ScanPhase, int, Optional[str]], None]


class ScanController:
    def __init__(
        self,
        answers: SurveyAnswers,
        loader: ModelLoader,
        adapter: FaceAgeAdapter,
        camera: Optional[Camera] = None,
    ):
        self.answers = answers
        self.breakdown = lifestyle_breakdown(answers)
        self.lifestyle_score = compute_lifestyle_score(answers)

        self._loader = loader
        self._adapter = adapter
        self._camera = camera
        self._session = CameraSession(camera) if camera is not None else None

        self.phase = ScanPhase.MODEL_LOADING
        self.stage: Optional[str] = None
        self.warning: Optional[str] = None
        self.outcome: Optional[ScanOutcome] = None
        self.closed = False

        self._listeners: List[Listener] = []
        # subscribed to the shared loader only while start() .. _close() runs
        self._unsubscribe_loader: Callable[[], None] = lambda: None

    # ===============================================================================
    # 🔹 observers
    # ===============================================================================
    @property
    def progress(self) -> int:
        return self._loader.progress

    @property
    def stream(self) -> Optional[MediaStream]:
        return self._session.stream if self._session is not None else None

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener) if listener in self._listeners else None

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self.phase, self.progress, self.stage)

    # ===============================================================================
    # 🔹 internals
    # ===============================================================================
    def _require(self, *phases: ScanPhase) -> None:
        if self.closed:
            raise InvalidScanTransition("scan was closed")
        if self.phase not in phases:
            allowed = ", ".join(p.value for p in phases)
            raise InvalidScanTransition(f"not allowed in phase '{self.phase.value}' (needs {allowed})")

    def _transition(self, to: ScanPhase) -> None:
        if to not in _TRANSITIONS[self.phase]:
            raise InvalidScanTransition(f"{self.phase.value} -> {to.value}")
        logger.debug("scan phase %s -> %s", self.phase.value, to.value)
        self.phase = to
        self._notify()

    def _release_camera(self) -> None:
        if self._session is not None:
            self._session.release()

    def _to_fallback(self, reason: str) -> None:
        self._release_camera()
        self.warning = reason
        logger.warning("Scan falling back to upload: %s", reason)
        self._transition(ScanPhase.UPLOAD_FALLBACK)

    async def _open_camera(self) -> None:
        if self._session is None:
            self._to_fallback(NO_CAMERA_WARNING)
            return
        try:
            await self._session.acquire()
        except CameraError as e:
            if not self.closed and self.phase is ScanPhase.CAMERA_READY:
                self._to_fallback(str(e) or NO_CAMERA_WARNING)
            return
        # back() or camera_failed() may have run while the stream was pending
        if self.closed or self.phase is not ScanPhase.CAMERA_READY:
            self._release_camera()

    def _set_stage(self, index: Optional[int]) -> None:
        self.stage = ANALYSIS_STAGES[index] if index is not None else None
        self._notify()

    def _close(self) -> None:
        self._release_camera()
        self._unsubscribe_loader()
        self.closed = True

    def close(self) -> None:
        """Drop the camera and the loader subscription. Safe to call in any phase."""
        if not self.closed:
            self._close()

    # ===============================================================================
    # 🔹 transitions
    # ===============================================================================
    async def start(self) -> ScanPhase:
        """Wait for the models, then open the camera."""
        self._require(ScanPhase.MODEL_LOADING)
        self._unsubscribe_loader = self._loader.on_progress(lambda _p: self._notify())
        self._notify()

        try:
            try:
                await self._loader.init()
            except ModelLoadFailure as e:
                self._to_fallback(str(e))
                return self.phase

            self._transition(ScanPhase.CAMERA_READY)
            await self._open_camera()
        except asyncio.CancelledError:
            self.close()
            raise
        return self.phase

    def camera_failed(self, error: Optional[CameraError] = None) -> ScanPhase:
        """The live stream died or permission was revoked while the preview was up."""
        self._require(ScanPhase.CAMERA_READY)
        self._to_fallback(str(error) if error else NO_CAMERA_WARNING)
        return self.phase

    async def retry_camera(self) -> ScanPhase:
        """From upload fallback, try the camera again (reloading models if they failed)."""
        self._require(ScanPhase.UPLOAD_FALLBACK)

        if not self._loader.is_ready:
            try:
                await self._loader.init()
            except ModelLoadFailure as e:
                self.warning = str(e)
                self._notify()
                return self.phase

        self._release_camera()
        self.warning = None
        self._transition(ScanPhase.CAMERA_READY)
        await self._open_camera()
        return self.phase

    async def capture(self) -> Optional[ScanOutcome]:
        """Grab one still frame from the live stream and analyse it."""
        self._require(ScanPhase.CAMERA_READY)
        stream = self.stream
        if stream is None or not stream.active:
            raise InvalidScanTransition("camera stream is not active")

        self._transition(ScanPhase.CAPTURING)
        try:
            frame = await self._camera.capture_frame(stream)
        except CameraError as e:
            self._to_fallback(str(e) or NO_CAMERA_WARNING)
            return None
        except asyncio.CancelledError:
            self.close()
            raise
        except Exception:
            logger.exception("Frame capture failed")
            self._to_fallback(NO_CAMERA_WARNING)
            return None
        finally:
            self._release_camera()

        return await self._run_analysis(frame)

    async def upload(self, image: ImageInput) -> ScanOutcome:
        """Analyse a user-supplied photo."""
        self._require(ScanPhase.UPLOAD_FALLBACK)
        self._release_camera()
        return await self._run_analysis(image)

    def back(self) -> None:
        """Leave the scan step. Stops the camera before handing control back."""
        self._require(ScanPhase.CAMERA_READY, ScanPhase.UPLOAD_FALLBACK)
        self._close()
        self._notify()

    # ===============================================================================
    # 🔹 analysis
    # ===============================================================================
    async def _run_analysis(self, image: ImageInput) -> ScanOutcome:
        try:
            return await self._analyze(image)
        except asyncio.CancelledError:
            self.close()
            raise

    async def _analyze(self, image: ImageInput) -> ScanOutcome:
        self._transition(ScanPhase.ANALYZING)
        actual_age = self.answers.actual_age

        self._set_stage(0)
        face = await self._adapter.estimate_face_score(image, actual_age)
        self._set_stage(1)

        if face is None:
            # labelled fallback: "looks exactly your age"
            face_score = config.FALLBACK_FACE_SCORE
            predicted_age = actual_age
            fallback = True
            warning = NO_FACE_WARNING
        else:
            face_score = face.face_score
            predicted_age = face.predicted_age
            fallback = False
            warning = None

        self._set_stage(2)
        result = compute_result(
            self.lifestyle_score, face_score, predicted_age, actual_age, breakdown=self.breakdown
        )
        self.outcome = ScanOutcome(
            result=result,
            face=face,
            lifestyle_score=self.lifestyle_score,
            face_score=face_score,
            fallback=fallback,
            warning=warning,
        )
        self.warning = warning
        self.stage = None
        self._transition(ScanPhase.COMPLETE)
        self._close()
        return self.outcome
