"""Pytest configuration and fixtures."""

import os

import cv2
import numpy as np
import pytest

# The service module wires its adapters at import time from these.
os.environ.setdefault("CAMERA_ADAPTER", "mock")
os.environ.setdefault("OCR_ADAPTER", "mock")
os.environ.setdefault("SEARCH_ADAPTER", "memory")
os.environ.setdefault("CAPTURE_POLICY", "multi_search")

from vehiclefinder.adapters.camera.mock_camera import MockCamera
from vehiclefinder.adapters.search.base import SearchAdapter
from vehiclefinder.adapters.vision.manager import RecognizerManager
from vehiclefinder.adapters.vision.mock_vision import MockVision
from vehiclefinder.orchestrator.contracts import CaptureSettings, CapturePolicy, SearchResult
from vehiclefinder.orchestrator.errors import SearchError
from vehiclefinder.orchestrator.state_machine import CaptureOrchestrator
from vehiclefinder.services.status_store import StatusStore


class FakeClock:
    """Seconds clock. Advances by `step` after every read."""

    def __init__(self, start: float = 0.0, step: float = 0.0):
        self.now = start
        self.step = step

    def __call__(self) -> float:
        value = self.now
        self.now += self.step
        return value


class ScriptedSearch(SearchAdapter):
    """Search collaborator with canned answers per identifier."""
    name = "scripted"

    def __init__(self, answers: dict | None = None, failing: set | None = None):
        self.answers = answers or {}
        self.failing = failing or set()
        self.calls: list[str] = []

    async def search(self, identifier: str) -> SearchResult:
        self.calls.append(identifier)
        if identifier in self.failing:
            raise SearchError(f"backend down for {identifier}")
        return SearchResult(matched_records=list(self.answers.get(identifier, [])))


def encode_jpeg(img) -> bytes:
    ok, buf = cv2.imencode(".jpg", img)
    assert ok
    return buf.tobytes()


@pytest.fixture
def status():
    return StatusStore()


@pytest.fixture
def frame():
    img = np.full((360, 640, 3), 255, dtype=np.uint8)
    cv2.putText(img, "AB12 CDE", (40, 200), cv2.FONT_HERSHEY_SIMPLEX, 2.5, (0, 0, 0), 6)
    return encode_jpeg(img)


@pytest.fixture
def make_orchestrator(status, frame):
    """Factory: orchestrator over a mock camera and a scripted recognizer."""

    def _make(texts="", search=None, policy=CapturePolicy.MULTI_SEARCH, camera=None, clock=None, **settings):
        vision = MockVision(status, texts=texts)
        manager = RecognizerManager(lambda: vision, status)
        results = []
        orch = CaptureOrchestrator(
            camera=camera or MockCamera(status, frames=[frame]),
            recognizer=manager,
            status_store=status,
            search=search,
            settings=CaptureSettings(policy=policy, **settings),
            clock=clock or FakeClock(),
            on_result=results.append,
        )
        orch.vision = vision
        orch.results = results
        return orch

    return _make
