"""Mock camera: serves still images (explicit frames or a directory of JPEGs) for testing."""
import os
import random
from pathlib import Path

from vehiclefinder.adapters.camera.base import CameraAdapter
from vehiclefinder.orchestrator.errors import CameraAccessError

SAMPLES_DIR = Path(__file__).parent / "samples"


class MockCamera(CameraAdapter):
    def __init__(self, status_store, frames: list[bytes] | None = None, frames_dir: str | None = None,
                 fail_with: str | None = None, ready: bool = True):
        self.status = status_store
        self.frames = list(frames or [])
        self.frames_dir = Path(frames_dir or os.getenv("MOCK_CAMERA_DIR", str(SAMPLES_DIR)))
        self.fail_with = fail_with      # simulate permission denied / no device
        self.ready = ready              # False: stream open but no dimensions yet
        self.open_count = 0
        self.release_count = 0
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    async def open(self) -> None:
        self.open_count += 1
        if self.fail_with:
            self.status.log(f"mock_camera: open failed ({self.fail_with})")
            raise CameraAccessError(self.fail_with)
        self._open = True
        self.status.log("mock_camera: open")

    def has_dimensions(self) -> bool:
        return self._open and self.ready

    def capture_bytes(self) -> bytes | None:
        if not self.has_dimensions():
            return None
        if self.frames:
            return self.frames[0] if len(self.frames) == 1 else self.frames.pop(0)
        jpegs = list(self.frames_dir.glob("*.jpg")) if self.frames_dir.is_dir() else []
        if not jpegs:
            self.status.log("mock_camera: no sample images found")
            return None
        chosen = random.choice(jpegs)
        self.status.log(f"mock_camera: serving {chosen.name}")
        return chosen.read_bytes()

    def release(self):
        if self._open:
            self.release_count += 1
        self._open = False
