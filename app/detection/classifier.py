"""
Score → label mapping.

Scores near 0.5 say little about the image, so the band between the two
thresholds is reported as Mixed instead of being split at the midpoint.
"""

from typing import Optional

from app.schemas.detection import DetectionResult, Label

AI_THRESHOLD = 0.65
HUMAN_THRESHOLD = 0.35

# Reported when the provider response held no usable score
NEUTRAL_SCORE = 0.5


def classify(ai_score: float) -> Label:
    if ai_score >= AI_THRESHOLD:
        return Label.AI
    if ai_score <= HUMAN_THRESHOLD:
        return Label.HUMAN
    return Label.MIXED


def build_result(ai_score: Optional[float]) -> DetectionResult:
    """Wrap a normalized score, falling back to a neutral Unknown result when absent."""
    if ai_score is None:
        return DetectionResult(ai_score=NEUTRAL_SCORE, label=Label.UNKNOWN)
    return DetectionResult(ai_score=ai_score, label=classify(ai_score))
