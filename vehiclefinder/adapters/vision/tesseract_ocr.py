"""
Tesseract OCR backend (pytesseract).

TESSERACT_CMD env var points pytesseract at a binary outside PATH.
Each call runs the tesseract subprocess in a worker thread so the event loop
keeps serving the camera preview and API while a frame is being read.
"""
import asyncio
import os

import cv2
import numpy as np
import pytesseract

from vehiclefinder.adapters.vision.base import CHAR_WHITELIST, TextRecognizer
from vehiclefinder.orchestrator.contracts import SegmentationMode
from vehiclefinder.orchestrator.errors import ImageDecodeError, RecognitionError


class TesseractOCR(TextRecognizer):
    name = "tesseract"

    def __init__(self, status_store, lang: str = "eng", tesseract_cmd: str | None = None):
        self.status = status_store
        self.lang = lang
        cmd = tesseract_cmd or os.getenv("TESSERACT_CMD")
        if cmd:
            pytesseract.pytesseract.tesseract_cmd = cmd
        self.version = None

    def config_for(self, mode: SegmentationMode) -> str:
        return f"--oem 3 --psm {int(mode)} -c tessedit_char_whitelist={CHAR_WHITELIST}"

    async def load(self) -> None:
        try:
            self.version = await asyncio.to_thread(pytesseract.get_tesseract_version)
        except pytesseract.TesseractNotFoundError as e:
            raise RecognitionError("tesseract binary not found (set TESSERACT_CMD)") from e
        self.status.log(f"tesseract_ocr: version {self.version} lang={self.lang}")

    def _read(self, image_bytes: bytes, mode: SegmentationMode) -> str:
        img = cv2.imdecode(np.frombuffer(image_bytes, dtype=np.uint8), cv2.IMREAD_GRAYSCALE)
        if img is None:
            raise ImageDecodeError("tesseract_ocr: image rejected")
        try:
            return pytesseract.image_to_string(img, lang=self.lang, config=self.config_for(mode))
        except pytesseract.TesseractError as e:
            raise RecognitionError(f"tesseract failed: {e}") from e

    async def recognize_text(self, image_bytes: bytes, mode: SegmentationMode = SegmentationMode.SPARSE_TEXT) -> str:
        text = await asyncio.to_thread(self._read, image_bytes, mode)
        text = text.strip()
        self.status.log(f"tesseract_ocr: psm={int(mode)} raw={text!r}")
        return text
