"""
camera.py — camera capability used by the scan controller

    request_stream()      -> MediaStream   (raises CameraPermissionDenied / CameraNotFound)
    capture_frame(stream) -> RGB still image
    stop_stream(stream)   -> releases the device, safe to call twice

CameraSession wraps one stream as an owned resource: acquired when the scan
enters the camera phase, released on every way out of it (including errors).
"""

import asyncio
import logging
from typing import Optional, Protocol

import cv2
import numpy as np
from PIL import Image

import config
from errors import CameraNotFound

logger = logging.getLogger(__name__)


class MediaStream:
    """A live camera stream. `active` turns False once every track is stopped."""

    def __init__(self, capture=None):
        self._capture = capture
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def read(self):
        return self._capture.read()

    def stop(self) -> None:
        if not self._active:
            return
        self._active = False
        if self._capture is not None:
            self._capture.release()


class Camera(Protocol):
    async def request_stream(self) -> MediaStream:
        ...

    async def capture_frame(self, stream: MediaStream) -> Image.Image:
        ...

    def stop_stream(self, stream: MediaStream) -> None:
        ...


# ===================================================================================
# 🔹 OpenCV webcam
# ===================================================================================

class OpenCVCamera:
    def __init__(self, device_index: Optional[int] = None):
        self.device_index = config.CAMERA_INDEX if device_index is None else device_index

    def _open(self) -> MediaStream:
        cap = cv2.VideoCapture(self.device_index)
        if not cap.isOpened():
            cap.release()
            raise CameraNotFound(f"camera {self.device_index} is not available")
        return MediaStream(cap)

    async def request_stream(self) -> MediaStream:
        stream = await asyncio.to_thread(self._open)
        logger.info("Camera %s opened", self.device_index)
        return stream

    async def capture_frame(self, stream: MediaStream) -> Image.Image:
        ok, frame = await asyncio.to_thread(stream.read)
        if not ok or frame is None:
            raise CameraNotFound("camera returned no frame")
        return Image.fromarray(cv2.cvtColor(np.asarray(frame), cv2.COLOR_BGR2RGB))

    def stop_stream(self, stream: MediaStream) -> None:
        stream.stop()


# ===================================================================================
# 🔹 Owned stream
# ===================================================================================

class CameraSession:
    """
    async with CameraSession(camera) as stream:
        ...
    The stream is stopped when the block exits, however it exits.
    release() may also be called early; it is idempotent.
    """

    def __init__(self, camera: Camera):
        self._camera = camera
        self.stream: Optional[MediaStream] = None

    async def acquire(self) -> MediaStream:
        self.release()
        stream = await self._camera.request_stream()
        # an overlapping acquire may have landed first
        self.release()
        self.stream = stream
        return stream

    def release(self) -> None:
        stream, self.stream = self.stream, None
        if stream is not None and stream.active:
            self._camera.stop_stream(stream)
            logger.info("Camera stream stopped")

    async def __aenter__(self) -> MediaStream:
        return await self.acquire()

    async def __aexit__(self, exc_type, exc, tb):
        self.release()
        return False
