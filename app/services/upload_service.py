"""
Upload staging: write validated uploads to disk, expose them at a public
URL Winston can fetch, and sweep them away afterwards.
"""

import logging
import os
import secrets
import string
import time
from urllib.parse import quote

import aiohttp
from fastapi import Request

from app.core.file_validator import sanitize_log_message
from app.detection.sniffer import extension_for
from app.integrations import http_client as http_module
from app.schemas.detection import ImageFormat

logger = logging.getLogger(__name__)

SELF_FETCH_HEADERS = {"User-Agent": "SignAiSelfCheck/1.0", "Accept": "image/*,*/*"}


def _now_ms() -> int:
    return int(time.time() * 1000)


def _random_token(length: int = 10) -> str:
    alphabet = string.ascii_lowercase + string.digits
    return ''.join(secrets.choice(alphabet) for _ in range(length))


def ensure_upload_dir(upload_dir: str) -> None:
    os.makedirs(upload_dir, exist_ok=True)


def stage_upload(content: bytes, image_format: ImageFormat, upload_dir: str) -> str:
    """Write the upload under a fresh unguessable name; returns the bare filename."""
    ensure_upload_dir(upload_dir)
    filename = f"{_now_ms()}-{_random_token()}{extension_for(image_format)}"
    path = os.path.join(upload_dir, filename)
    with open(path, "wb") as fh:
        fh.write(content)
    logger.info(sanitize_log_message(f"[UPLOAD] Staged {len(content)} bytes at {path}"))
    return filename


def resolve_staged_path(upload_dir: str, filename: str) -> str | None:
    """Map a requested filename to a staged file, refusing anything outside upload_dir."""
    if not filename or filename != os.path.basename(filename) or filename.startswith("."):
        return None
    path = os.path.join(upload_dir, filename)
    if not os.path.isfile(path):
        return None
    return path


def resolve_base_url(request: Request, configured: str | None = None) -> str:
    """Public origin of this service: configured value, else proxy headers + Host."""
    if configured:
        return configured.rstrip("/")
    proto = request.headers.get("x-forwarded-proto") or "https"
    proto = proto.split(",")[0].strip() or "https"
    host = request.headers.get("host") or request.url.netloc
    return f"{proto}://{host}"


def build_public_url(base_url: str, filename: str) -> str:
    # ?v= defeats any CDN/proxy cache between Winston and us
    return f"{base_url.rstrip('/')}/uploads/{quote(filename)}?v={_now_ms()}"


def cleanup_stale_uploads(upload_dir: str, ttl_sec: int) -> int:
    """Delete staged files older than `ttl_sec`. Returns how many were removed."""
    if not os.path.isdir(upload_dir):
        return 0
    cutoff = time.time() - ttl_sec
    removed = 0
    for entry in os.scandir(upload_dir):
        if not entry.is_file():
            continue
        try:
            if entry.stat().st_mtime < cutoff:
                os.remove(entry.path)
                removed += 1
        except FileNotFoundError:
            # removed concurrently by the request that staged it
            continue
    if removed:
        logger.info(f"[CLEANUP] Removed {removed} stale upload(s)")
    return removed


async def self_fetch_check(url: str, timeout_sec: float = 15.0) -> dict:
    """Fetch our own public URL the way Winston will. Reports, never raises."""
    try:
        async with http_module.request_session() as session:
            async with session.get(
                url,
                headers=SELF_FETCH_HEADERS,
                timeout=aiohttp.ClientTimeout(total=timeout_sec),
            ) as response:
                await response.read()
                return {
                    "ok": 200 <= response.status < 300,
                    "status": response.status,
                    "contentType": response.headers.get("Content-Type"),
                }
    except Exception as e:
        logger.warning(f"[UPLOAD] Self-fetch of public URL failed: {e!r}")
        return {"ok": False, "error": str(e) or e.__class__.__name__}
