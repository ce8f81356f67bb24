import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class Phase(str, Enum):
    IDLE = "idle"
    READING = "reading"
    SEARCHING = "searching"
    ERROR = "error"          # camera failure, left only by reopening


class CapturePolicy(str, Enum):
    SINGLE_SHOT = "single_shot"
    MULTI_SEARCH = "multi_search"
    AUTO_SCAN = "auto_scan"


class SegmentationMode(int, Enum):
    # values are tesseract --psm numbers
    SINGLE_LINE = 7
    SPARSE_TEXT = 11


class SearchStatus(str, Enum):
    SEARCHING = "searching"
    FOUND = "found"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class OcrProfile:
    name: str
    max_width: int
    jpeg_quality: float      # 0..1
    contrast: float = 1.3


ACCURATE = OcrProfile(name="accurate", max_width=800, jpeg_quality=0.92)
FAST = OcrProfile(name="fast", max_width=400, jpeg_quality=0.85)
PROFILES = {p.name: p for p in (ACCURATE, FAST)}


@dataclass
class SearchResult:
    matched_records: list[dict[str, Any]] = field(default_factory=list)


@dataclass
class SearchStatusEntry:
    identifier: str
    status: SearchStatus = SearchStatus.SEARCHING
    matched_records: Optional[list[dict[str, Any]]] = None


@dataclass
class CaptureResult:
    identifier: Optional[str]
    candidates: list[str] = field(default_factory=list)
    matched_records: Optional[list[dict[str, Any]]] = None
    statuses: list[SearchStatusEntry] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return bool(self.matched_records)


@dataclass
class CaptureSettings:
    policy: CapturePolicy = CapturePolicy.MULTI_SEARCH
    profile: OcrProfile = ACCURATE
    auto_scan_interval_ms: int = 1500
    stability_ms: int = 500
    double_tap_ms: int = 400

    @classmethod
    def from_env(cls) -> "CaptureSettings":
        return cls(
            policy=CapturePolicy(os.getenv("CAPTURE_POLICY", CapturePolicy.MULTI_SEARCH.value).lower()),
            profile=PROFILES.get(os.getenv("OCR_PROFILE", "accurate").lower(), ACCURATE),
            auto_scan_interval_ms=int(os.getenv("AUTO_SCAN_INTERVAL_MS", "1500")),
            stability_ms=int(os.getenv("STABILITY_MS", "500")),
            double_tap_ms=int(os.getenv("DOUBLE_TAP_MS", "400")),
        )
