"""
Process-wide recognizer holder.

The recognizer is created on the first recognize call and reused for every
capture after that, across orchestrators. The initialization future is cached
(not its result), so callers racing on first use all await the same load.
A load that fails is dropped from the cache and retried on the next call.
"""
import asyncio
from typing import Callable

from vehiclefinder.adapters.vision.base import TextRecognizer
from vehiclefinder.orchestrator.contracts import SegmentationMode
from vehiclefinder.orchestrator.errors import ImageDecodeError, RecognitionError


class RecognizerManager:
    def __init__(self, factory: Callable[[], TextRecognizer], status_store):
        self._factory = factory
        self.status = status_store
        self._loading: asyncio.Future | None = None
        self.init_count = 0

    @property
    def ready(self) -> bool:
        f = self._loading
        return f is not None and f.done() and not f.cancelled() and f.exception() is None

    async def get(self) -> TextRecognizer:
        if self._loading is None:
            self._loading = asyncio.ensure_future(self._load())
        loading = self._loading
        try:
            return await asyncio.shield(loading)
        except RecognitionError:
            if self._loading is loading:
                self._loading = None
            raise

    async def _load(self) -> TextRecognizer:
        self.init_count += 1
        try:
            recognizer = self._factory()
            self.status.log(f"recognizer: loading {recognizer.name}")
            await recognizer.load()
        except RecognitionError as e:
            self.status.log(f"recognizer: load failed: {e}")
            raise
        except Exception as e:
            self.status.log(f"recognizer: load failed {type(e).__name__}: {e}")
            raise RecognitionError(str(e)) from e
        self.status.log(f"recognizer: {recognizer.name} ready")
        return recognizer

    async def recognize_text(self, image_bytes: bytes, mode: SegmentationMode = SegmentationMode.SPARSE_TEXT) -> str:
        recognizer = await self.get()
        try:
            text = await recognizer.recognize_text(image_bytes, mode)
        except (RecognitionError, ImageDecodeError):
            raise
        except Exception as e:
            raise RecognitionError(f"{recognizer.name}: {type(e).__name__}: {e}") from e
        return text or ""
