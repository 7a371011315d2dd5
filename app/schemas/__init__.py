from app.schemas.detection import (
    DetectionResponse,
    DetectionResult,
    ImageFormat,
    ImageProbe,
    Label,
)

__all__ = [
    "DetectionResponse",
    "DetectionResult",
    "ImageFormat",
    "ImageProbe",
    "Label",
]
