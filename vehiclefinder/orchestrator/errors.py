ERR_BUSY = "ERR_BUSY"
ERR_CAMERA = "ERR_CAMERA"
ERR_DECODE = "ERR_DECODE"
ERR_NOT_OPEN = "ERR_NOT_OPEN"
ERR_UNKNOWN = "ERR_UNKNOWN"


class VehicleFinderError(Exception):
    code = ERR_UNKNOWN


class CameraAccessError(VehicleFinderError):
    """Permission denied or device unavailable. Terminal until the camera is reopened."""
    code = ERR_CAMERA


class ImageDecodeError(VehicleFinderError):
    """Empty or corrupt frame. The frame is dropped."""
    code = ERR_DECODE


class RecognitionError(VehicleFinderError):
    """Recognizer unavailable or image rejected by the backend."""


class SearchError(VehicleFinderError):
    """Search collaborator failed for one identifier."""
