"""
System / health routes.
"""

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

router = APIRouter(tags=["System"])


@router.get("/", response_class=PlainTextResponse)
def root():
    return "SignAi Winston backend is alive"


@router.get("/health")
async def health():
    return {"status": "healthy"}


@router.get("/healthz")
async def healthz():
    return {"status": "ok"}


@router.get("/robots.txt", response_class=PlainTextResponse)
def robots():
    return "User-agent: *\nDisallow: /"
