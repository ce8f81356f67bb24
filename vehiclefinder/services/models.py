from pydantic import BaseModel, Field
from typing import Any, Literal, Optional

from vehiclefinder.orchestrator.contracts import CaptureResult

PhaseName = Literal["idle", "reading", "searching", "error"]
PolicyName = Literal["single_shot", "multi_search", "auto_scan"]


class SearchStatusOut(BaseModel):
    identifier: str
    status: Literal["searching", "found", "not_found"]
    matched_records: Optional[list[dict[str, Any]]] = None


class CaptureResultOut(BaseModel):
    identifier: Optional[str] = None
    candidates: list[str] = Field(default_factory=list)
    matched_records: Optional[list[dict[str, Any]]] = None
    statuses: list[SearchStatusOut] = Field(default_factory=list)
    found: bool = False
    message: str = ""       # notification text for the host UI

    @classmethod
    def from_result(cls, r: CaptureResult) -> "CaptureResultOut":
        return cls(
            identifier=r.identifier,
            candidates=r.candidates,
            matched_records=r.matched_records,
            statuses=[
                SearchStatusOut(identifier=s.identifier, status=s.status.value, matched_records=s.matched_records)
                for s in r.statuses
            ],
            found=r.found,
            message=outcome_message(r),
        )


def outcome_message(r: CaptureResult) -> str:
    if r.matched_records:
        n = len(r.matched_records)
        return "Vehicle found!" if n == 1 else f"{n} vehicles found"
    if r.identifier:
        return f"Read: {r.identifier}"
    if r.candidates:
        return f"No match for: {', '.join(r.candidates)}"
    return "Could not detect plate or stock ID. Try again."


class StatusResponse(BaseModel):
    phase: PhaseName
    policy: PolicyName
    camera_open: bool
    auto_scanning: bool
    error: Optional[str] = None
    candidates: list[str]
    statuses: list[SearchStatusOut]
    last_result: Optional[CaptureResultOut] = None
    captures: int = 0
    logs: list[str]


class CameraResponse(BaseModel):
    ok: bool
    phase: PhaseName
    error: Optional[str] = None
    error_code: Optional[str] = None


class CaptureFrameRequest(BaseModel):
    image: str  # base64 JPEG


class CaptureResponse(BaseModel):
    ok: bool
    result: Optional[CaptureResultOut] = None
    error_code: Optional[str] = None
    error: Optional[str] = None


class TapResponse(BaseModel):
    ok: bool
    captured: bool = False
    result: Optional[CaptureResultOut] = None


class AutoScanResponse(BaseModel):
    ok: bool
    auto_scanning: bool
    error_code: Optional[str] = None


class ExtractRequest(BaseModel):
    text: str


class ExtractResponse(BaseModel):
    candidates: list[str]
    best: Optional[str] = None


class VehiclesResponse(BaseModel):
    query: str
    vehicles: list[dict[str, Any]]
