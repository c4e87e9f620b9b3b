"""
face_age.py — AI age estimate → face score (20..100)

Concept:
    - detect ONE face (mediapipe FaceDetection) and estimate age / gender from
      the crop (OpenCV DNN Caffe nets, 8 age buckets → expected age)
    - age_difference = actual_age - predicted_age   (positive = looks younger)
    - face score = piecewise-linear function of age_difference, looking younger
      scores higher:

        diff >= 10          → 100
        5   <= diff < 10    → 90 + (diff - 5) * 2
        0   <= diff < 5     → 70 + diff * 4
        -10 <= diff < 0     → 70 + diff * 3
        -30 <= diff < -10   → 40 + (diff + 10)
        diff < -30          → max(20, 20 + (diff + 30) * 0.5)

      rounded half-up and clamped to 20..100
    - no face / detector error / timeout / models not ready → None
      (the caller decides the fallback, nothing is raised from here)

Public API:
    - face_score_from_difference(age_difference) -> int
    - FaceAgeAdapter(detector).estimate_face_score(image, actual_age) -> FaceAnalysisResult | None
    - OpenCVAgeGenderDetector(loader)
    - decode_image(data) -> PIL.Image
"""

import asyncio
import base64
import binascii
import inspect
import io
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional, Protocol, Tuple, Union

import cv2
import numpy as np
from PIL import Image, UnidentifiedImageError

import config
from analyzers.survey_scoring import round_half_up
from errors import InvalidImage, ModelNotReady
from models.survey import FaceAnalysisResult

logger = logging.getLogger(__name__)

FACE_SCORE_MIN = 20
FACE_SCORE_MAX = 100


# ===================================================================================
# 1) FACE SCORE TABLE
#    rows are checked top → bottom, the first row whose lower bound <= diff wins
# ===================================================================================

FACE_SCORE_TABLE: Tuple[Tuple[float, Callable[[float], float]], ...] = (
    (10, lambda d: 100),
    (5, lambda d: 90 + (d - 5) * 2),
    (0, lambda d: 70 + d * 4),
    (-10, lambda d: 70 + d * 3),
    (-30, lambda d: 40 + (d + 10) * 1),
    (float("-inf"), lambda d: max(20, 20 + (d + 30) * 0.5)),
)


def face_score_from_difference(age_difference: float) -> int:
    for lower_bound, formula in FACE_SCORE_TABLE:
        if age_difference >= lower_bound:
            raw = formula(age_difference)
            break
    else:
        # only reachable for NaN
        raw = FACE_SCORE_MIN
    return max(FACE_SCORE_MIN, min(FACE_SCORE_MAX, round_half_up(raw)))


# ===================================================================================
# 2) IMAGE DECODING (upload / base64 from the web client)
# ===================================================================================

ImageInput = Union[Image.Image, bytes, bytearray, str, np.ndarray]


def decode_image(data: ImageInput) -> Image.Image:
    """PIL image / raw bytes / base64 (optionally a data URL) / RGB array → RGB PIL image."""
    if isinstance(data, Image.Image):
        return data.convert("RGB")
    if isinstance(data, np.ndarray):
        return Image.fromarray(data).convert("RGB")

    if isinstance(data, str):
        b64_str = data.strip()
        if b64_str.startswith("data:"):
            header, _, b64_str = b64_str.partition(",")
            if not header.startswith("data:image"):
                raise InvalidImage("Only image files can be uploaded")
        try:
            data = base64.b64decode(b64_str, validate=True)
        except (binascii.Error, ValueError) as e:
            raise InvalidImage("Only image files can be uploaded") from e

    try:
        img = Image.open(io.BytesIO(bytes(data)))
        img.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        raise InvalidImage("Only image files can be uploaded") from e
    return img.convert("RGB")


# ===================================================================================
# 3) DETECTOR (external capability)
# ===================================================================================

@dataclass(frozen=True)
class Detection:
    age: float
    gender: Optional[str] = None
    gender_probability: Optional[float] = None


class AgeGenderDetector(Protocol):
    def detect(self, image: Image.Image) -> Optional[Detection]:
        ...


# Levi & Hassner age buckets (0-2) (4-6) (8-12) (15-20) (25-32) (38-43) (48-53) (60-100) → midpoints
AGE_BUCKET_MIDPOINTS = np.array([1.0, 5.0, 10.0, 17.5, 28.5, 40.5, 50.5, 70.0], dtype=np.float32)
GENDER_LIST = ["male", "female"]
MODEL_MEAN_VALUES = (78.4263377603, 87.7689143744, 114.895847746)
NET_INPUT_SIZE = (227, 227)


def _clahe_l(img_rgb: np.ndarray) -> np.ndarray:
    """CLAHE on the L channel so dim or back-lit selfies still get a face box."""
    lab = cv2.cvtColor(img_rgb, cv2.COLOR_RGB2LAB)
    L, A, B = cv2.split(lab)
    clahe = cv2.createCLAHE(clipLimit=2.0, tileGridSize=(8, 8))
    return cv2.cvtColor(cv2.merge([clahe.apply(L), A, B]), cv2.COLOR_LAB2RGB)


class OpenCVAgeGenderDetector:
    """
    mediapipe face box → padded crop → Caffe age + gender nets.

    The age net is a classifier; the surfaced age is the probability-weighted
    mean of the bucket midpoints so small appearance changes move it smoothly.
    """

    def __init__(self, loader, padding: float = 0.15):
        self._loader = loader
        self._padding = padding
        # mediapipe graphs and cv2.dnn nets are not safe to share across threads
        self._lock = threading.Lock()

    def _face_box(self, img_rgb: np.ndarray):
        res = self._loader.get("face_detector").process(_clahe_l(img_rgb))
        if not res.detections:
            return None

        best = max(res.detections, key=lambda d: d.score[0])
        box = best.location_data.relative_bounding_box
        h, w, _ = img_rgb.shape

        pad_x = int(self._padding * box.width * w)
        pad_y = int(self._padding * box.height * h)
        x1 = max(0, int(box.xmin * w) - pad_x)
        y1 = max(0, int(box.ymin * h) - pad_y)
        x2 = min(w, int((box.xmin + box.width) * w) + pad_x)
        y2 = min(h, int((box.ymin + box.height) * h) + pad_y)

        if x2 <= x1 or y2 <= y1:
            return None
        return x1, y1, x2, y2

    def detect(self, image: Image.Image) -> Optional[Detection]:
        img_rgb = np.array(image.convert("RGB"))

        with self._lock:
            box = self._face_box(img_rgb)
            if box is None:
                return None

            x1, y1, x2, y2 = box
            face_bgr = cv2.cvtColor(img_rgb[y1:y2, x1:x2], cv2.COLOR_RGB2BGR)
            blob = cv2.dnn.blobFromImage(face_bgr, 1.0, NET_INPUT_SIZE, MODEL_MEAN_VALUES, swapRB=False)

            gender_net = self._loader.get("gender_net")
            gender_net.setInput(blob)
            gender_probs = gender_net.forward()[0]

            age_net = self._loader.get("age_net")
            age_net.setInput(blob)
            age_probs = age_net.forward()[0]

        age_probs = age_probs / (age_probs.sum() + 1e-6)
        age = float(np.dot(age_probs, AGE_BUCKET_MIDPOINTS))
        g = int(np.argmax(gender_probs))

        return Detection(age=age, gender=GENDER_LIST[g], gender_probability=float(gender_probs[g]))


# ===================================================================================
# 4) ADAPTER
# ===================================================================================

class FaceAgeAdapter:
    """Wraps the detector so the scan flow only ever sees a result or None."""

    def __init__(self, detector: AgeGenderDetector, timeout: Optional[float] = None):
        self._detector = detector
        self._timeout = config.ANALYSIS_TIMEOUT_SECONDS if timeout is None else timeout

    async def _detect(self, img: Image.Image) -> Optional[Detection]:
        if inspect.iscoroutinefunction(self._detector.detect):
            call = self._detector.detect(img)
        else:
            call = asyncio.to_thread(self._detector.detect, img)
        return await asyncio.wait_for(call, timeout=self._timeout)

    async def estimate_face_score(self, image: ImageInput, actual_age: int) -> Optional[FaceAnalysisResult]:
        try:
            img = decode_image(image)
            detection = await self._detect(img)
        except asyncio.TimeoutError:
            logger.warning("Face analysis timed out after %.1fs", self._timeout)
            return None
        except ModelNotReady:
            logger.warning("Face analysis requested before models were ready")
            return None
        except InvalidImage as e:
            logger.warning("Face analysis skipped: %s", e)
            return None
        except Exception:
            logger.exception("Face analysis failed")
            return None

        if detection is None:
            logger.info("No face detected")
            return None

        age_difference = actual_age - detection.age
        return FaceAnalysisResult(
            predicted_age=max(0, round_half_up(detection.age)),
            gender=detection.gender,
            gender_probability=detection.gender_probability,
            face_score=face_score_from_difference(age_difference),
        )


# ===================================================================================
# 5) CLI TEST
# ===================================================================================

if __name__ == "__main__":
    import sys

    from scan.model_loader import ModelLoader

    async def _main(path: str, age: int):
        loader = ModelLoader()
        await loader.init()
        adapter = FaceAgeAdapter(OpenCVAgeGenderDetector(loader))
        with open(path, "rb") as f:
            res = await adapter.estimate_face_score(f.read(), age)
        loader.dispose()
        return res

    if len(sys.argv) < 3:
        print("usage: python -m analyzers.face_age <image> <actual_age>")
    else:
        result = asyncio.run(_main(sys.argv[1], int(sys.argv[2])))
        if result is None:
            print("No face detected")
        else:
            print(f"Predicted age = {result.predicted_age}, face score = {result.face_score}")
