"""
Claude vision transcription backend.

Sends the preprocessed frame to a Claude model and asks for the plate /
stock-ID characters only, one reading per line, so the output goes through
the same candidate extraction as tesseract text.

Requires ANTHROPIC_API_KEY in environment (.env or system env).
CLAUDE_OCR_MODEL overrides the model.
"""
import base64
import os
import re

from vehiclefinder.adapters.vision.base import CHAR_WHITELIST, TextRecognizer
from vehiclefinder.orchestrator.contracts import SegmentationMode
from vehiclefinder.orchestrator.errors import RecognitionError

CLAUDE_MODEL = os.getenv("CLAUDE_OCR_MODEL", "claude-haiku-4-5-20251001")

_PROMPT = (
    "You are reading a vehicle licence plate or a dealer stock-ID sticker from a phone camera frame.\n"
    "Transcribe every plate number or stock code you can see.\n\n"
    "Rules:\n"
    "- use only uppercase letters A-Z and digits 0-9\n"
    "- one reading per line\n"
    "- no explanations, no punctuation\n"
    "- reply with an empty message if nothing is readable"
)
_PROMPT_SINGLE = _PROMPT.replace("every plate number or stock code", "the single most prominent plate number or stock code")

_NOT_ALLOWED = re.compile(rf"[^{CHAR_WHITELIST}\s]")


class ClaudeVision(TextRecognizer):
    name = "claude"

    def __init__(self, status_store, api_key: str | None = None):
        self.status = status_store
        self._api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
        self._client = None

    async def load(self) -> None:
        if not self._api_key:
            raise RecognitionError("ANTHROPIC_API_KEY not set")
        import anthropic
        self._client = anthropic.AsyncAnthropic(api_key=self._api_key)
        self.status.log(f"claude_vision: ready ({CLAUDE_MODEL})")

    async def recognize_text(self, image_bytes: bytes, mode: SegmentationMode = SegmentationMode.SPARSE_TEXT) -> str:
        if self._client is None:
            raise RecognitionError("claude_vision: not loaded")

        prompt = _PROMPT_SINGLE if mode == SegmentationMode.SINGLE_LINE else _PROMPT
        b64 = base64.standard_b64encode(image_bytes).decode("utf-8")
        try:
            message = await self._client.messages.create(
                model=CLAUDE_MODEL,
                max_tokens=64,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {
                                "type": "image",
                                "source": {
                                    "type": "base64",
                                    "media_type": "image/jpeg",
                                    "data": b64,
                                },
                            },
                            {"type": "text", "text": prompt},
                        ],
                    }
                ],
            )
        except Exception as e:
            self.status.log(f"claude_vision: API error: {e}")
            raise RecognitionError(f"claude API error: {e}") from e

        raw = "".join(block.text for block in message.content if getattr(block, "type", "") == "text")
        text = _NOT_ALLOWED.sub("", raw.upper()).strip()
        self.status.log(f"claude_vision: raw={raw.strip()!r}")
        return text
