"""
Detection routes: /detect-image (and its older alias /analyze-image)

Accepts multipart/form-data with an 'image' file field. The response is
always `{ai_score, label, raw}`; failures use the same shape with a neutral
score and an error label.
"""

import logging

from fastapi import APIRouter, Request

from app.config import settings
from app.core.errors import DetectionError
from app.core.file_validator import validate_upload_size
from app.schemas.detection import DetectionResponse
from app.services.detection_service import DetectionOrchestrator
from app.services.upload_service import resolve_base_url

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Detection"])


def get_orchestrator() -> DetectionOrchestrator:
    return DetectionOrchestrator.from_settings(settings)


async def _read_image_field(request: Request) -> bytes:
    content_type = request.headers.get("content-type", "")
    if "multipart/form-data" not in content_type:
        raise DetectionError(
            status_code=415,
            label="Error: unsupported media type (use multipart/form-data)",
        )

    form = await request.form()
    file_obj = form.get("image")
    if file_obj is None or isinstance(file_obj, str):
        raise DetectionError(status_code=400, label="Error: no image uploaded")

    # Reject oversized uploads before pulling them into memory
    max_bytes = settings.max_image_upload_bytes
    if file_obj.size is not None:
        validate_upload_size(file_obj.size, max_bytes)
    content = await file_obj.read(max_bytes + 1)
    if len(content) > max_bytes:
        validate_upload_size(len(content), max_bytes)
    return content


@router.post("/detect-image", response_model=DetectionResponse)
@router.post("/analyze-image", response_model=DetectionResponse, include_in_schema=False)
async def detect_image(request: Request):
    """Score an uploaded image for AI generation via Winston."""
    content = await _read_image_field(request)
    base_url = resolve_base_url(request, settings.public_base_url)

    try:
        return await get_orchestrator().detect(content, base_url)
    except DetectionError:
        raise
    except Exception as e:
        logger.exception(f"[DETECT] Unhandled error: {e}")
        raise DetectionError(status_code=500, label="Server error", raw={"error": str(e)})
