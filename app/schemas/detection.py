from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class ImageFormat(str, Enum):
    PNG = "png"
    JPEG = "jpeg"
    WEBP = "webp"
    UNKNOWN = "unknown"


class Label(str, Enum):
    AI = "AI"
    HUMAN = "Human"
    MIXED = "Mixed"
    UNKNOWN = "Unknown"     # only used when no score could be extracted


class ImageProbe(BaseModel):
    """Container format and pixel size read from the first bytes of an upload."""
    model_config = ConfigDict(frozen=True)

    format: ImageFormat = ImageFormat.UNKNOWN
    width: Optional[int] = None
    height: Optional[int] = None

    @property
    def has_dimensions(self) -> bool:
        return self.width is not None and self.height is not None


class DetectionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    ai_score: float = Field(ge=0.0, le=1.0, description="0 = human, 1 = AI")
    label: Label


class DetectionResponse(BaseModel):
    ai_score: float
    label: str      # a Label value, or "Error: ..." text on failures
    raw: Optional[Dict[str, Any]] = None
