"""Shared fakes for the detector, camera and model bundles."""

import asyncio
import base64
import io

import pytest
from PIL import Image

from analyzers.face_age import Detection, FaceAgeAdapter
from errors import CameraPermissionDenied
from models.survey import SurveyAnswers
from scan.camera import MediaStream
from scan.model_loader import ModelBundle, ModelLoader


class FakeDetector:
    def __init__(self, age=None, error=None):
        self.age = age
        self.error = error
        self.calls = 0

    def detect(self, image):
        self.calls += 1
        if self.error is not None:
            raise self.error
        if self.age is None:
            return None
        return Detection(age=self.age, gender="female", gender_probability=0.93)


class SlowDetector:
    async def detect(self, image):
        await asyncio.sleep(5)
        return Detection(age=30)


class FakeCamera:
    def __init__(self, error=None, frame_error=None):
        self.error = error
        self.frame_error = frame_error
        self.streams = []
        self.stopped = []

    async def request_stream(self):
        if self.error is not None:
            raise self.error
        stream = MediaStream()
        self.streams.append(stream)
        return stream

    async def capture_frame(self, stream):
        if self.frame_error is not None:
            raise self.frame_error
        return Image.new("RGB", (64, 64), (200, 160, 140))

    def stop_stream(self, stream):
        stream.stop()
        self.stopped.append(stream)


def _bundle(name, counter=None):
    def _load(model_dir):
        if counter is not None:
            counter.append(name)
        return object()
    return ModelBundle(name, _load)


def _broken(model_dir):
    raise FileNotFoundError("missing model file: weights/age_net.caffemodel")


@pytest.fixture
def ready_loader():
    return ModelLoader(bundles=[_bundle("face_detector"), _bundle("age_net"), _bundle("gender_net")])


@pytest.fixture
def failing_loader():
    return ModelLoader(bundles=[_bundle("face_detector"), ModelBundle("age_net", _broken)])


@pytest.fixture
def make_bundle():
    return _bundle


@pytest.fixture
def broken_bundle():
    return ModelBundle("age_net", _broken)


@pytest.fixture
def fake_detector():
    return FakeDetector


@pytest.fixture
def slow_detector():
    return SlowDetector()


@pytest.fixture
def fake_camera():
    return FakeCamera


@pytest.fixture
def denied():
    return CameraPermissionDenied("Camera permission was denied")


@pytest.fixture
def adapter_for():
    def _make(detector, timeout=None):
        return FaceAgeAdapter(detector, timeout=timeout)
    return _make


@pytest.fixture
def answers_80():
    """Lifestyle score 80: sub-scores 100 + 90 + 70 + 80 + 60."""
    return SurveyAnswers(
        sleep_hours="7",
        exercise_frequency="3",
        diet_quality="sometimes",
        water_intake="1500",
        stress_level=5,
        actual_age=35,
    )


@pytest.fixture
def face_image():
    return Image.new("RGB", (64, 64), (210, 170, 150))


@pytest.fixture
def png_b64(face_image):
    buf = io.BytesIO()
    face_image.save(buf, format="PNG")
    return base64.b64encode(buf.getvalue()).decode()
