from vehiclefinder.adapters.vision.base import TextRecognizer
from vehiclefinder.orchestrator.contracts import SegmentationMode


class MockVision(TextRecognizer):
    """Scripted recognizer: returns `texts` in order, then repeats the last one."""
    name = "mock"

    def __init__(self, status_store, texts: list[str] | str = ""):
        self.status = status_store
        self.texts = [texts] if isinstance(texts, str) else list(texts)
        self.calls: list[SegmentationMode] = []
        self.loads = 0

    async def load(self) -> None:
        self.loads += 1

    async def recognize_text(self, image_bytes: bytes, mode: SegmentationMode = SegmentationMode.SPARSE_TEXT) -> str:
        self.calls.append(mode)
        if not self.texts:
            text = ""
        elif len(self.texts) > 1:
            text = self.texts.pop(0)
        else:
            text = self.texts[0]
        self.status.log(f"mock_vision: {text!r}")
        return text
