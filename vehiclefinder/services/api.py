import base64
import binascii
import os
from typing import Optional

from fastapi import FastAPI
from dotenv import load_dotenv
from vehiclefinder.services.models import (
    StatusResponse, CaptureResultOut, SearchStatusOut,
    CameraResponse, CaptureFrameRequest, CaptureResponse, TapResponse, AutoScanResponse,
    ExtractRequest, ExtractResponse, VehiclesResponse,
)
from vehiclefinder.services.status_store import StatusStore
from vehiclefinder.orchestrator.candidates import extract_candidates
from vehiclefinder.orchestrator.contracts import CaptureSettings, Phase
from vehiclefinder.orchestrator.state_machine import CaptureOrchestrator
from vehiclefinder.orchestrator import errors
from vehiclefinder.adapters.vision.manager import RecognizerManager
from vehiclefinder.adapters.search.memory_search import filter_exact

load_dotenv(dotenv_path=".env", override=False)

app = FastAPI(title="vehiclefinder")

status = StatusStore()

# Camera: CAMERA_ADAPTER = cv2 | mock (default: cv2, mock when opencv is missing)
_camera_adapter = os.getenv("CAMERA_ADAPTER", "cv2").lower()
if _camera_adapter == "cv2":
    try:
        from vehiclefinder.adapters.camera.cv2_camera import CV2Camera
        camera = CV2Camera(status)
    except ImportError:
        from vehiclefinder.adapters.camera.mock_camera import MockCamera
        camera = MockCamera(status)
        status.log("camera: opencv not installed, using MockCamera")
else:
    from vehiclefinder.adapters.camera.mock_camera import MockCamera
    camera = MockCamera(status)
status.log(f"camera adapter: {type(camera).__name__}")

# Recognizer: OCR_ADAPTER = tesseract | claude | mock  (default: tesseract)
# Built lazily by the manager on the first read; one instance per process.
_ocr_adapter = os.getenv("OCR_ADAPTER", "tesseract").lower()


def _make_recognizer():
    if _ocr_adapter == "tesseract":
        from vehiclefinder.adapters.vision.tesseract_ocr import TesseractOCR
        return TesseractOCR(status)
    if _ocr_adapter == "claude":
        from vehiclefinder.adapters.vision.claude_vision import ClaudeVision
        return ClaudeVision(status)
    from vehiclefinder.adapters.vision.mock_vision import MockVision
    return MockVision(status, texts=os.getenv("MOCK_OCR_TEXT", ""))


recognizer = RecognizerManager(_make_recognizer, status)
status.log(f"ocr adapter: {_ocr_adapter}")

# Search: SEARCH_ADAPTER = memory | http | none  (default: memory)
_search_adapter = os.getenv("SEARCH_ADAPTER", "memory").lower()
if _search_adapter == "http":
    from vehiclefinder.adapters.search.http_search import HttpSearch
    search_url = os.getenv("SEARCH_HTTP_BASE_URL", "http://127.0.0.1:9100")
    search = HttpSearch(status, base_url=search_url)
    status.log(f"search adapter: http -> {search_url}")
elif _search_adapter == "memory":
    from vehiclefinder.adapters.search.memory_search import MemorySearch
    search = MemorySearch(status)
    status.log("search adapter: memory")
else:
    search = None
    status.log("search adapter: none (single-shot results only)")

orch = CaptureOrchestrator(
    camera=camera, recognizer=recognizer, status_store=status, search=search,
    settings=CaptureSettings.from_env(),
)


def _result_out(result):
    return CaptureResultOut.from_result(result) if result else None


def _trigger_error():
    """Error code for a trigger the orchestrator would ignore, or None."""
    if orch.phase == Phase.ERROR:
        return errors.ERR_CAMERA
    if orch.busy:
        return errors.ERR_BUSY
    return None


@app.get("/status", response_model=StatusResponse)
def get_status():
    return StatusResponse(
        phase=orch.phase.value,
        policy=orch.policy.value,
        camera_open=orch.camera.is_open,
        auto_scanning=orch.auto_scanning,
        error=orch.error,
        candidates=orch.candidates,
        statuses=[
            SearchStatusOut(identifier=s.identifier, status=s.status.value, matched_records=s.matched_records)
            for s in orch.statuses
        ],
        last_result=_result_out(orch.last_result),
        captures=status.captures,
        logs=status.logs,
    )


@app.post("/camera/open", response_model=CameraResponse)
async def camera_open():
    ok = await orch.open()
    return CameraResponse(
        ok=ok, phase=orch.phase.value, error=orch.error,
        error_code=None if ok else (errors.ERR_CAMERA if orch.phase == Phase.ERROR else errors.ERR_BUSY),
    )


@app.post("/camera/close", response_model=CameraResponse)
async def camera_close():
    orch.close()
    return CameraResponse(ok=True, phase=orch.phase.value, error=orch.error)


@app.post("/capture", response_model=CaptureResponse)
async def capture():
    """Manual capture from the server camera."""
    code = _trigger_error()
    if code:
        return CaptureResponse(ok=False, error_code=code, error=orch.error)
    if not orch.camera.is_open:
        return CaptureResponse(ok=False, error_code=errors.ERR_NOT_OPEN, error="camera not open")
    result = await orch.capture()
    if result is None:
        return CaptureResponse(ok=False, error_code=errors.ERR_DECODE, error="no usable frame")
    return CaptureResponse(ok=True, result=_result_out(result))


@app.post("/capture_frame", response_model=CaptureResponse)
async def capture_frame(req: CaptureFrameRequest):
    """Manual capture with a frame from the browser's own camera."""
    try:
        image_bytes = base64.b64decode(req.image, validate=True)
    except (binascii.Error, ValueError) as e:
        status.log(f"CAPTURE_FRAME decode error: {e}")
        return CaptureResponse(ok=False, error_code=errors.ERR_DECODE, error="base64 decode failed")

    code = _trigger_error()
    if code:
        return CaptureResponse(ok=False, error_code=code, error=orch.error)
    status.log(f"CAPTURE_FRAME received ({len(image_bytes)} bytes)")
    result = await orch.capture(frame=image_bytes)
    if result is None:
        return CaptureResponse(ok=False, error_code=errors.ERR_DECODE, error="frame could not be decoded")
    return CaptureResponse(ok=True, result=_result_out(result))


@app.post("/tap", response_model=TapResponse)
async def tap():
    """Video surface tap. Two taps within DOUBLE_TAP_MS capture a frame."""
    result = await orch.tap()
    return TapResponse(ok=True, captured=result is not None, result=_result_out(result))


@app.post("/auto_scan/start", response_model=AutoScanResponse)
async def auto_scan_start():
    ok = orch.start_auto_scan()
    return AutoScanResponse(
        ok=ok, auto_scanning=orch.auto_scanning,
        error_code=None if ok else (errors.ERR_CAMERA if orch.phase == Phase.ERROR else errors.ERR_NOT_OPEN),
    )


@app.post("/auto_scan/stop", response_model=AutoScanResponse)
async def auto_scan_stop():
    orch.stop_auto_scan()
    return AutoScanResponse(ok=True, auto_scanning=orch.auto_scanning)


@app.post("/extract", response_model=ExtractResponse)
def extract(req: ExtractRequest):
    candidates = extract_candidates(req.text)
    return ExtractResponse(candidates=candidates, best=candidates[0] if candidates else None)


@app.get("/vehicles", response_model=VehiclesResponse)
async def vehicles(q: str = "", brand: Optional[str] = None, model: Optional[str] = None):
    """Inventory search. The memory store also matches brand/model/location;
    `brand` and `model` are exact (case-insensitive) filters."""
    if search is None:
        return VehiclesResponse(query=q, vehicles=[])
    if hasattr(search, "search_all"):
        rows = search.search_all(q, brand=brand, model=model)
    else:
        try:
            rows = (await search.search(q)).matched_records
        except errors.SearchError as e:
            status.log(f"VEHICLES search error: {e}")
            rows = []
        rows = filter_exact(rows, brand=brand, model=model)
    return VehiclesResponse(query=q, vehicles=rows)


@app.get("/health")
async def health():
    """Check all subsystems."""
    checks = {"api": True, "camera_adapter": type(orch.camera).__name__, "ocr_adapter": _ocr_adapter}

    try:
        await recognizer.get()
        checks["recognizer_ready"] = True
    except errors.RecognitionError as e:
        checks["recognizer_ready"] = False
        checks["recognizer_error"] = str(e)

    checks["search_adapter"] = _search_adapter
    checks["search_reachable"] = await search.ping() if search is not None else False

    checks["camera_error"] = orch.error
    checks["all_ok"] = checks["recognizer_ready"] and (search is None or checks["search_reachable"])
    return checks
