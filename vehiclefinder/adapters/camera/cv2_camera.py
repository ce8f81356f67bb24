"""
OpenCV webcam capture adapter.
CAMERA_INDEX env var (default 0) selects the webcam device.
Requests 1280x720, the resolution a phone's rear camera preview gives.
"""
import asyncio
import os

import cv2

from vehiclefinder.adapters.camera.base import CameraAdapter
from vehiclefinder.orchestrator.errors import CameraAccessError

CAPTURE_WIDTH = 1280
CAPTURE_HEIGHT = 720
JPEG_QUALITY = 90


class CV2Camera(CameraAdapter):
    def __init__(self, status_store, index: int | None = None):
        self.status = status_store
        self._index = index if index is not None else int(os.getenv("CAMERA_INDEX", "0"))
        self._cap = None

    @property
    def is_open(self) -> bool:
        return self._cap is not None and self._cap.isOpened()

    def _acquire(self):
        cap = cv2.VideoCapture(self._index)
        if not cap.isOpened():
            cap.release()
            raise CameraAccessError(f"failed to open camera device {self._index}")
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, CAPTURE_WIDTH)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, CAPTURE_HEIGHT)
        cap.set(cv2.CAP_PROP_BUFFERSIZE, 1)   # newest frame, not a queued one
        ret, _ = cap.read()
        if not ret:
            cap.release()
            raise CameraAccessError(f"camera device {self._index} opened but delivers no frames")
        return cap

    async def open(self) -> None:
        if self.is_open:
            return
        try:
            self._cap = await asyncio.to_thread(self._acquire)
        except cv2.error as e:
            raise CameraAccessError(f"camera device {self._index}: {e}") from e
        w, h = self._frame_size()
        self.status.log(f"cv2_camera: device {self._index} open {w}x{h}")

    def _frame_size(self) -> tuple[int, int]:
        if not self.is_open:
            return 0, 0
        return int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH)), int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT))

    def has_dimensions(self) -> bool:
        w, h = self._frame_size()
        return w > 0 and h > 0

    def capture_bytes(self) -> bytes | None:
        if not self.is_open:
            return None
        ret, frame = self._cap.read()
        if not ret or frame is None:
            self.status.log("cv2_camera: frame capture failed")
            return None
        ok, buf = cv2.imencode(".jpg", frame, [cv2.IMWRITE_JPEG_QUALITY, JPEG_QUALITY])
        if not ok:
            return None
        return bytes(buf)

    def release(self):
        if self._cap is not None:
            self._cap.release()
            self._cap = None
            self.status.log(f"cv2_camera: device {self._index} released")
