"""
Upload validation and log sanitization utilities.

The gate works on the facts `sniff` reports (format, pixel size) plus the
raw byte count; no image is decoded here.
"""

import re
import logging

from app.core.errors import DetectionError
from app.schemas.detection import ImageFormat, ImageProbe

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = (ImageFormat.PNG, ImageFormat.JPEG, ImageFormat.WEBP)


def validate_upload_size(filesize: int, max_bytes: int) -> None:
    if filesize == 0:
        raise DetectionError(status_code=400, label="Error: no image uploaded")
    if filesize > max_bytes:
        raise DetectionError(
            status_code=413,
            label=f"Error: image too large (max {max_bytes // 1024 // 1024}MB)",
            raw={"size_bytes": filesize},
        )


def validate_probe(probe: ImageProbe, min_dimension: int) -> None:
    """
    Reject uploads Winston cannot score.

    Unknown containers are always rejected. Size is only enforced when the
    header carried it (WEBP and SOF-less JPEGs pass through).
    """
    if probe.format not in SUPPORTED_FORMATS:
        logger.info(f"[VALIDATE] Rejected unsupported upload type: {probe.format.value}")
        raise DetectionError(
            status_code=400,
            label=f"Error: unsupported image type ({probe.format.value})",
            raw={"detected": probe.format.value},
        )

    if probe.has_dimensions and (probe.width < min_dimension or probe.height < min_dimension):
        logger.info(f"[VALIDATE] Rejected small image: {probe.width}x{probe.height}")
        raise DetectionError(
            status_code=400,
            label=f"Error: image too small ({probe.width}x{probe.height})",
            raw={"size": probe.model_dump(mode="json")},
        )


def sanitize_log_message(message: str) -> str:
    """Strip sensitive file paths from log messages."""
    msg = re.sub(r'\/[^\s]+\/tmp[a-zA-Z0-9_]+', '[TEMP_FILE]', message)
    msg = re.sub(r'\/[^\s]+\/([^\/\s]+)', r'.../\1', msg)
    return msg
