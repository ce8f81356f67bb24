"""
Capture orchestrator: one state machine for every capture policy.

  idle --trigger--> reading --read_done--> idle
                    reading --search_start--> searching --search_done--> idle
  idle --camera_failed--> error --reopen--> idle

Triggers (manual capture, double tap, auto-scan tick) are ignored unless the
phase is idle, so at most one read/search cycle is in flight. close() bumps
the generation counter; a cycle that finishes under an older generation has
its result dropped.
"""
import asyncio
import time
from enum import Enum
from typing import Callable, Optional

from vehiclefinder.adapters.vision.preprocess import preprocess
from vehiclefinder.orchestrator.candidates import extract_best, extract_candidates
from vehiclefinder.orchestrator.contracts import (
    CapturePolicy, CaptureResult, CaptureSettings, Phase, SearchStatus, SearchStatusEntry, SegmentationMode,
)
from vehiclefinder.orchestrator.debounce import DoubleTapDetector, StabilityTracker
from vehiclefinder.orchestrator.errors import CameraAccessError, ImageDecodeError, SearchError
from vehiclefinder.orchestrator.policies import SEGMENTATION


class Event(str, Enum):
    TRIGGER = "trigger"
    READ_DONE = "read_done"
    SEARCH_START = "search_start"
    SEARCH_PROGRESS = "search_progress"   # status entry changed, no transition
    SEARCH_DONE = "search_done"
    CAMERA_FAILED = "camera_failed"
    REOPEN = "reopen"
    CLOSE = "close"


_TRANSITIONS = {
    (Phase.IDLE, Event.TRIGGER): Phase.READING,
    (Phase.READING, Event.READ_DONE): Phase.IDLE,
    (Phase.READING, Event.SEARCH_START): Phase.SEARCHING,
    (Phase.SEARCHING, Event.SEARCH_DONE): Phase.IDLE,
    (Phase.IDLE, Event.CAMERA_FAILED): Phase.ERROR,
    (Phase.ERROR, Event.CAMERA_FAILED): Phase.ERROR,
    (Phase.ERROR, Event.REOPEN): Phase.IDLE,
    (Phase.READING, Event.CLOSE): Phase.IDLE,
    (Phase.SEARCHING, Event.CLOSE): Phase.IDLE,
}


class InvalidTransition(RuntimeError):
    pass


Listener = Callable[[Event, Phase], None]


class CaptureOrchestrator:
    def __init__(self, camera, recognizer, status_store, search=None, settings: CaptureSettings | None = None,
                 clock: Callable[[], float] = time.monotonic,
                 on_result: Optional[Callable[[CaptureResult], None]] = None,
                 on_close: Optional[Callable[[], None]] = None):
        self.camera = camera
        self.recognizer = recognizer
        self.search = search
        self.status = status_store
        self.settings = settings or CaptureSettings()
        self.on_result = on_result
        self.on_close = on_close
        self._clock = clock

        self.phase = Phase.IDLE
        self.error: str | None = None
        self.candidates: list[str] = []
        self.statuses: list[SearchStatusEntry] = []
        self.last_result: CaptureResult | None = None

        self._generation = 0
        self._listeners: list[Listener] = []
        self._stability = StabilityTracker(self.settings.stability_ms)
        self._double_tap = DoubleTapDetector(self.settings.double_tap_ms)
        self._auto_task: asyncio.Task | None = None
        self._auto_stop: asyncio.Event | None = None

    # ── state ───────────────────────────────────────────────────────────────

    @property
    def policy(self) -> CapturePolicy:
        return self.settings.policy

    @property
    def busy(self) -> bool:
        return self.phase in (Phase.READING, Phase.SEARCHING)

    @property
    def auto_scanning(self) -> bool:
        return self._auto_stop is not None and not self._auto_stop.is_set()

    @property
    def auto_scan_task(self) -> asyncio.Task | None:
        return self._auto_task

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def _notify(self, event: Event):
        for listener in list(self._listeners):
            listener(event, self.phase)

    def _fire(self, event: Event):
        nxt = _TRANSITIONS.get((self.phase, event))
        if nxt is None:
            raise InvalidTransition(f"{event.value} not allowed in phase {self.phase.value}")
        self.phase = nxt
        self._notify(event)

    def _now_ms(self) -> float:
        return self._clock() * 1000.0

    # ── camera lifecycle ────────────────────────────────────────────────────

    async def open(self) -> bool:
        """Acquire the camera. On failure the orchestrator stays in `error` until opened again."""
        if self.camera.is_open:
            return True
        if self.busy:
            self.status.log("orchestrator: open ignored, cycle in flight")
            return False
        try:
            await self.camera.open()
        except CameraAccessError as e:
            self.camera.release()
            self.error = str(e) or "Camera access denied"
            self.status.last_error = self.error
            self.status.log(f"orchestrator: camera error: {self.error}")
            self._fire(Event.CAMERA_FAILED)
            return False

        if self.phase == Phase.ERROR:
            self.error = None
            self._fire(Event.REOPEN)
        self.status.log(f"orchestrator: camera open policy={self.policy.value}")
        if self.policy == CapturePolicy.AUTO_SCAN:
            self.start_auto_scan()
        return True

    def close(self):
        """Release the camera now. In-flight reads finish on their own; their results are dropped."""
        self._generation += 1
        self.stop_auto_scan()
        self._double_tap.reset()
        self.camera.release()
        if self.busy:
            self._fire(Event.CLOSE)
        self.status.log("orchestrator: closed")
        if self.on_close:
            self.on_close()

    # ── triggers ────────────────────────────────────────────────────────────

    def _can_trigger(self, needs_camera: bool) -> bool:
        if self.phase != Phase.IDLE:
            self.status.log(f"orchestrator: trigger ignored (phase={self.phase.value})")
            return False
        if needs_camera and not self.camera.is_open:
            self.status.log("orchestrator: trigger ignored (camera not open)")
            return False
        return True

    async def capture(self, frame: bytes | None = None) -> CaptureResult | None:
        """Manual capture. `frame` lets a host that owns the camera pass its own snapshot.
        Returns None when the trigger was ignored or the frame was dropped."""
        if not self._can_trigger(needs_camera=frame is None):
            return None
        if frame is None:
            frame = self.camera.capture_bytes()
            if not frame:
                self.status.log("orchestrator: no frame available")
                return None
        return await self._run_cycle(frame, SEGMENTATION[self.policy])

    async def tap(self, now_ms: float | None = None) -> CaptureResult | None:
        """Video surface tap; the second tap inside the window captures."""
        now_ms = self._now_ms() if now_ms is None else now_ms
        if not self._double_tap.tap(now_ms):
            return None
        self.status.log("orchestrator: double tap")
        return await self.capture()

    def start_auto_scan(self) -> bool:
        if self.auto_scanning:
            return True
        if self.phase == Phase.ERROR or not self.camera.is_open:
            self.status.log("orchestrator: auto-scan not started (camera unavailable)")
            return False
        self._stability.reset()
        stop = asyncio.Event()
        self._auto_stop = stop
        self._auto_task = asyncio.get_running_loop().create_task(self._auto_scan_loop(stop))
        # however the task ends, auto_scanning reads False afterwards
        self._auto_task.add_done_callback(lambda _task: stop.set())
        self.status.log(f"orchestrator: auto-scan every {self.settings.auto_scan_interval_ms}ms")
        return True

    def stop_auto_scan(self):
        if self._auto_stop is not None and not self._auto_stop.is_set():
            self._auto_stop.set()
            self.status.log("orchestrator: auto-scan stopped")

    async def _auto_scan_loop(self, stop: asyncio.Event):
        interval = self.settings.auto_scan_interval_ms / 1000.0
        while not stop.is_set():
            try:
                await asyncio.wait_for(stop.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass
            if stop.is_set():
                break
            try:
                await self._scan_tick(stop)
            except Exception as e:
                self.status.log(f"orchestrator: scan tick error {type(e).__name__}: {e}")

    async def _scan_tick(self, stop: asyncio.Event):
        if not self.camera.has_dimensions() or self.phase != Phase.IDLE:
            return
        frame = self.camera.capture_bytes()
        if frame:
            await self._run_cycle(frame, SEGMENTATION[CapturePolicy.AUTO_SCAN], auto_stop=stop)

    # ── cycle ───────────────────────────────────────────────────────────────

    async def _read(self, frame: bytes, mode: SegmentationMode) -> str:
        image = await asyncio.to_thread(preprocess, frame, self.settings.profile)
        return await self.recognizer.recognize_text(image, mode)

    def _stale(self, generation: int, auto_stop: asyncio.Event | None) -> bool:
        return generation != self._generation or (auto_stop is not None and auto_stop.is_set())

    async def _run_cycle(self, frame: bytes, mode: SegmentationMode,
                         auto_stop: asyncio.Event | None = None) -> CaptureResult | None:
        """preprocess -> recognize -> extract -> (search). With `auto_stop` this is an
        auto-scan tick: only a stable best candidate produces a result."""
        generation = self._generation
        watching = auto_stop
        self.candidates = []
        self.statuses = []
        self._fire(Event.TRIGGER)
        t0 = time.perf_counter()
        try:
            try:
                text = await self._read(frame, mode)
            except ImageDecodeError as e:
                self.status.log(f"orchestrator: frame dropped: {e}")
                return None
            if self._stale(generation, watching):
                self.status.log("orchestrator: late read discarded")
                return None

            if watching is not None:
                best = extract_best(text)
                stable = self._stability.observe(best, self._now_ms())
                self.status.log(f"orchestrator: scan best={best} stable={stable}")
                if stable is None:
                    return None
                watching.set()
                watching = None
                candidates = [stable]
            else:
                candidates = extract_candidates(text)
            self.candidates = candidates
            self.status.log(f"orchestrator: candidates={candidates}")

            if self.search is not None and self.policy != CapturePolicy.SINGLE_SHOT and candidates:
                result = await self._search_until_found(candidates, generation)
                if result is None:
                    return None
            else:
                result = CaptureResult(identifier=candidates[0] if candidates else None, candidates=candidates)
        except Exception as e:
            # unreadable plates are routine: report "nothing found" and go back to idle
            self.status.log(f"orchestrator: cycle error {type(e).__name__}: {e}")
            if self._stale(generation, watching):
                return None
            if watching is not None:
                self._stability.observe(None, self._now_ms())
                return None
            result = CaptureResult(identifier=None, candidates=[])
        finally:
            if generation == self._generation:
                if self.phase == Phase.READING:
                    self._fire(Event.READ_DONE)
                elif self.phase == Phase.SEARCHING:
                    self._fire(Event.SEARCH_DONE)

        dt = int((time.perf_counter() - t0) * 1000)
        self.status.log(f"orchestrator: result identifier={result.identifier} found={result.found} dt={dt}ms")
        self._emit(result)
        return result

    async def _search_until_found(self, candidates: list[str], generation: int) -> CaptureResult | None:
        self._fire(Event.SEARCH_START)
        for identifier in candidates:
            entry = SearchStatusEntry(identifier=identifier)
            self.statuses.append(entry)
            self._notify(Event.SEARCH_PROGRESS)
            try:
                records = (await self.search.search(identifier)).matched_records
            except SearchError as e:
                self.status.log(f"orchestrator: search {identifier} failed: {e}")
                records = []
            except Exception as e:
                # a broken collaborator costs this candidate only
                self.status.log(f"orchestrator: search {identifier} error {type(e).__name__}: {e}")
                records = []
            if generation != self._generation:
                return None
            if records:
                entry.status = SearchStatus.FOUND
                entry.matched_records = list(records)
                self._notify(Event.SEARCH_PROGRESS)
                return CaptureResult(identifier=identifier, candidates=candidates,
                                     matched_records=list(records), statuses=list(self.statuses))
            entry.status = SearchStatus.NOT_FOUND
            self._notify(Event.SEARCH_PROGRESS)
        return CaptureResult(identifier=None, candidates=candidates, matched_records=[], statuses=list(self.statuses))

    def _emit(self, result: CaptureResult):
        self.last_result = result
        self.status.record_result(result)
        if self.on_result:
            self.on_result(result)
