"""
Serves staged uploads so Winston can fetch them by URL.
"""

from fastapi import APIRouter, HTTPException
from fastapi.responses import FileResponse

from app.config import settings
from app.detection.sniffer import content_type_for, sniff_format
from app.services.upload_service import resolve_staged_path

router = APIRouter(tags=["Uploads"])

NO_CACHE_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Cache-Control": "no-store",
    "Pragma": "no-cache",
}


@router.get("/uploads/{filename}")
def get_upload(filename: str):
    path = resolve_staged_path(settings.upload_dir, filename)
    if path is None:
        raise HTTPException(status_code=404, detail="Not found")

    with open(path, "rb") as fh:
        head = fh.read(32)
    return FileResponse(
        path,
        media_type=content_type_for(sniff_format(head)),
        headers=NO_CACHE_HEADERS,
    )
