from dataclasses import dataclass, field
from typing import Optional, List
from vehiclefinder.orchestrator.contracts import CaptureResult

@dataclass
class StatusStore:
    last_result: Optional[CaptureResult] = None
    last_error: Optional[str] = None
    captures: int = 0
    logs: List[str] = field(default_factory=list)

    def record_result(self, result: CaptureResult):
        self.last_result = result
        self.captures += 1

    def log(self, msg: str):
        self.logs.append(msg)
        if len(self.logs) > 200:
            self.logs = self.logs[-200:]
