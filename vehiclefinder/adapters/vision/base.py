from abc import ABC, abstractmethod

from vehiclefinder.orchestrator.contracts import SegmentationMode

# plates and stock IDs only ever contain these
CHAR_WHITELIST = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"


class TextRecognizer(ABC):
    name = "recognizer"

    async def load(self) -> None:
        """One-time backend setup. Raises RecognitionError if the backend is unusable."""

    @abstractmethod
    async def recognize_text(self, image_bytes: bytes, mode: SegmentationMode = SegmentationMode.SPARSE_TEXT) -> str:
        """Return raw recognized text ("" when nothing was read)."""
        ...
