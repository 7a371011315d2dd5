"""
Detection orchestration for /detect-image.

`DetectionOrchestrator.detect` runs one upload through:
  1. size + container validation (sniff → validation gate)
  2. staging on disk and public URL construction
  3. optional self-fetch of that URL (debug info only)
  4. the Winston call
  5. score extraction and labelling

Configuration is handed in at construction; nothing here reads the
environment.
"""

import logging
import time
from typing import Any

from app.config import Settings
from app.core.errors import DetectionError
from app.core.file_validator import validate_probe, validate_upload_size
from app.detection.classifier import build_result
from app.detection.normalizer import extract_ai_score
from app.detection.sniffer import sniff
from app.integrations.winston import ProviderError, ProviderUnavailableError, WinstonClient
from app.services import upload_service

logger = logging.getLogger(__name__)


class DetectionOrchestrator:
    def __init__(self, settings: Settings, provider: WinstonClient):
        self.settings = settings
        self.provider = provider

    @classmethod
    def from_settings(cls, settings: Settings) -> "DetectionOrchestrator":
        return cls(settings, WinstonClient.from_settings(settings))

    async def detect(self, content: bytes, base_url: str) -> dict[str, Any]:
        validate_upload_size(len(content), self.settings.max_image_upload_bytes)

        if not self.settings.winston_api_key:
            raise DetectionError(status_code=500, label="Error: WINSTON_API_KEY missing")

        probe = sniff(content)
        validate_probe(probe, self.settings.min_image_dimension)
        size = probe.model_dump(mode="json") if probe.has_dimensions else None

        filename = upload_service.stage_upload(content, probe.format, self.settings.upload_dir)
        image_url = upload_service.build_public_url(base_url, filename)

        self_fetch = None
        if self.settings.self_fetch_enabled:
            self_fetch = await upload_service.self_fetch_check(
                image_url, self.settings.self_fetch_timeout_sec
            )

        debug = {
            "imageUrl": image_url,
            "realType": probe.format.value,
            "size": size,
            "selfFetch": self_fetch,
        }

        start_time = time.time()
        try:
            payload = await self.provider.detect(image_url)
        except ProviderError as e:
            raise DetectionError(
                status_code=502,
                label="Winston error",
                raw={"winston": e.payload, "debug": debug},
            ) from e
        except ProviderUnavailableError as e:
            raise DetectionError(
                status_code=502,
                label="Error: provider unreachable",
                raw={"error": str(e), "debug": debug},
            ) from e
        duration = time.time() - start_time

        ai_score = extract_ai_score(payload)
        if ai_score is None:
            logger.warning("[DETECT] No usable score in Winston response; reporting neutral result")
        result = build_result(ai_score)
        logger.info(
            f"[DETECT] {probe.format.value} {size} → ai_score={result.ai_score:.3f} "
            f"label={result.label.value} ({duration:.2f}s)"
        )

        return {
            "ai_score": result.ai_score,
            "label": result.label.value,
            "raw": {"winston": payload, "debug": debug},
        }
