from abc import ABC, abstractmethod


class CameraAdapter(ABC):
    """Exclusively-owned live video source. One consumer at a time."""

    @abstractmethod
    async def open(self) -> None:
        """Acquire the stream. Raises CameraAccessError on permission/device failure."""
        ...

    @abstractmethod
    def capture_bytes(self) -> bytes | None:
        """Capture one frame. Returns JPEG bytes or None when no frame is available."""
        ...

    @abstractmethod
    def has_dimensions(self) -> bool:
        """True once the stream delivers frames with a non-zero size."""
        ...

    @abstractmethod
    def release(self) -> None:
        """Stop the stream. Safe to call more than once."""
        ...

    @property
    @abstractmethod
    def is_open(self) -> bool:
        ...
