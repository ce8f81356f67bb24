import base64

import pytest
from fastapi.testclient import TestClient

from conftest import FakeClock

from vehiclefinder.adapters.camera.mock_camera import MockCamera
from vehiclefinder.adapters.search.memory_search import MemorySearch
from vehiclefinder.adapters.vision.manager import RecognizerManager
from vehiclefinder.adapters.vision.mock_vision import MockVision
from vehiclefinder.orchestrator.contracts import CaptureSettings
from vehiclefinder.orchestrator.state_machine import CaptureOrchestrator
from vehiclefinder.services import api


@pytest.fixture
def wired(monkeypatch, status, frame):
    """Fresh orchestrator behind the module-level app."""
    camera = MockCamera(status, frames=[frame])
    recognizer = RecognizerManager(lambda: MockVision(status, texts="AB12 CDE"), status)
    search = MemorySearch(status)
    orch = CaptureOrchestrator(camera=camera, recognizer=recognizer, status_store=status,
                               search=search, settings=CaptureSettings(), clock=FakeClock(step=0.1))
    monkeypatch.setattr(api, "status", status)
    monkeypatch.setattr(api, "recognizer", recognizer)
    monkeypatch.setattr(api, "search", search)
    monkeypatch.setattr(api, "orch", orch)
    return orch


@pytest.fixture
def client(wired):
    with TestClient(api.app) as c:
        yield c


def test_capture_frame_finds_vehicle(client, frame):
    r = client.post("/capture_frame", json={"image": base64.b64encode(frame).decode()})
    body = r.json()
    assert r.status_code == 200
    assert body["ok"] is True
    result = body["result"]
    assert result["identifier"] == "AB12CDE"
    assert result["found"] is True
    assert [v["id"] for v in result["matched_records"]] == ["1"]
    assert result["statuses"] == [
        {"identifier": "AB12CDE", "status": "found", "matched_records": result["matched_records"]},
    ]
    assert result["message"] == "Vehicle found!"


def test_capture_frame_rejects_bad_base64(client):
    body = client.post("/capture_frame", json={"image": "not base64!!"}).json()
    assert body["ok"] is False
    assert body["error_code"] == "ERR_DECODE"


def test_capture_frame_rejects_non_image(client):
    body = client.post("/capture_frame", json={"image": base64.b64encode(b"hello").decode()}).json()
    assert body["error_code"] == "ERR_DECODE"


def test_capture_requires_open_camera(client):
    body = client.post("/capture").json()
    assert body["ok"] is False
    assert body["error_code"] == "ERR_NOT_OPEN"


def test_open_capture_close(client, wired):
    assert client.post("/camera/open").json() == {"ok": True, "phase": "idle", "error": None, "error_code": None}

    body = client.post("/capture").json()
    assert body["ok"] is True
    assert body["result"]["identifier"] == "AB12CDE"

    st = client.get("/status").json()
    assert st["phase"] == "idle"
    assert st["camera_open"] is True
    assert st["captures"] == 1
    assert st["last_result"]["identifier"] == "AB12CDE"
    assert st["candidates"] == ["AB12CDE", "AB12", "CDE"]

    assert client.post("/camera/close").json()["ok"] is True
    assert wired.camera.is_open is False


def test_camera_denied(client, wired):
    wired.camera.fail_with = "Permission denied"
    body = client.post("/camera/open").json()
    assert body == {"ok": False, "phase": "error", "error": "Permission denied", "error_code": "ERR_CAMERA"}

    assert client.post("/capture").json()["error_code"] == "ERR_CAMERA"
    assert client.post("/auto_scan/start").json()["error_code"] == "ERR_CAMERA"
    assert client.get("/health").json()["camera_error"] == "Permission denied"


def test_double_tap_endpoint(client):
    client.post("/camera/open")
    first = client.post("/tap").json()
    second = client.post("/tap").json()
    assert first == {"ok": True, "captured": False, "result": None}
    assert second["captured"] is True
    assert second["result"]["identifier"] == "AB12CDE"


def test_auto_scan_start_stop(client):
    assert client.post("/auto_scan/start").json()["error_code"] == "ERR_NOT_OPEN"
    client.post("/camera/open")
    assert client.post("/auto_scan/start").json() == {"ok": True, "auto_scanning": True, "error_code": None}
    assert client.post("/auto_scan/stop").json()["auto_scanning"] is False


def test_extract(client):
    body = client.post("/extract", json={"text": "AB12 CDE some noise XJ4821"}).json()
    assert body["best"] == "AB12CDE"
    assert body["candidates"][:2] == ["AB12CDE", "XJ4821"]
    assert client.post("/extract", json={"text": ""}).json() == {"candidates": [], "best": None}


def test_vehicles_search(client):
    body = client.get("/vehicles", params={"q": "toyota"}).json()
    assert body["query"] == "toyota"
    assert [v["plate_no"] for v in body["vehicles"]] == ["AB12CDE"]
    assert len(client.get("/vehicles", params={"q": "STK10"}).json()["vehicles"]) == 3


def test_health(client):
    body = client.get("/health").json()
    assert body["recognizer_ready"] is True
    assert body["search_reachable"] is True
    assert body["camera_error"] is None
    assert body["all_ok"] is True


def test_vehicles_brand_and_model_filters(client):
    body = client.get("/vehicles", params={"brand": "honda"}).json()
    assert [v["id"] for v in body["vehicles"]] == ["2"]
    body = client.get("/vehicles", params={"q": "STK10", "model": "320D"}).json()
    assert [v["id"] for v in body["vehicles"]] == ["3"]
    assert client.get("/vehicles", params={"q": "STK10", "brand": "Mazda"}).json()["vehicles"] == []
    assert len(client.get("/vehicles").json()["vehicles"]) == 5
