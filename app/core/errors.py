"""
Errors surfaced to the frontend.

The frontend always reads `{ai_score, label, raw}`, even on failure, so
detection failures carry a human-readable label and optional debug payload
instead of a bare `detail` string. `app.main` renders them.
"""

from typing import Any, Optional

from fastapi import HTTPException

from app.detection.classifier import NEUTRAL_SCORE


class DetectionError(HTTPException):
    def __init__(self, status_code: int, label: str, raw: Optional[dict] = None):
        super().__init__(status_code=status_code, detail=label)
        self.label = label
        self.raw = raw

    def to_body(self) -> dict[str, Any]:
        body: dict[str, Any] = {"ai_score": NEUTRAL_SCORE, "label": self.label}
        if self.raw is not None:
            body["raw"] = self.raw
        return body
