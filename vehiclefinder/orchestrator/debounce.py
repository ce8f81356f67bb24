"""
Timing helpers owned by the orchestrator. All times are milliseconds from
the orchestrator's clock, passed in explicitly.
"""


class StabilityTracker:
    """Accepts a reading once the same value has been seen again at least
    `min_gap_ms` after it was first seen. A different or empty reading
    re-arms with the new value."""

    def __init__(self, min_gap_ms: int = 500):
        self.min_gap_ms = min_gap_ms
        self.value: str | None = None
        self.first_seen_ms: float | None = None

    def reset(self):
        self.value = None
        self.first_seen_ms = None

    def observe(self, value: str | None, now_ms: float) -> str | None:
        if value and value == self.value and now_ms - self.first_seen_ms >= self.min_gap_ms:
            self.reset()
            return value
        if value != self.value:
            self.value = value or None
            self.first_seen_ms = now_ms
        return None


class DoubleTapDetector:
    def __init__(self, window_ms: int = 400):
        self.window_ms = window_ms
        self.last_tap_ms: float | None = None

    def reset(self):
        self.last_tap_ms = None

    def tap(self, now_ms: float) -> bool:
        if self.last_tap_ms is not None and now_ms - self.last_tap_ms <= self.window_ms:
            self.last_tap_ms = None
            return True
        self.last_tap_ms = now_ms
        return False
