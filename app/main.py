import asyncio
import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

# Load environment variables before anything reads them
load_dotenv()

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

from app.api import detection, system, uploads  # noqa: E402
from app.config import settings  # noqa: E402
from app.core.errors import DetectionError  # noqa: E402
from app.integrations import http_client  # noqa: E402
from app.services.upload_service import cleanup_stale_uploads, ensure_upload_dir  # noqa: E402


async def periodic_cleanup():
    """Background task removing staged uploads once Winston is done with them."""
    while True:
        try:
            await asyncio.sleep(settings.cleanup_interval_sec)
            cleanup_stale_uploads(settings.upload_dir, settings.upload_ttl_sec)
            logger.debug("[CLEANUP] Periodic cleanup completed")
        except asyncio.CancelledError:
            break
        except Exception as e:
            logger.error(f"[CLEANUP] Error in periodic cleanup: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    ensure_upload_dir(settings.upload_dir)
    await http_client.initialize()

    cleanup_task = None
    if os.getenv("TESTING", "").lower() != "true":
        cleanup_task = asyncio.create_task(periodic_cleanup())
        logger.info("[STARTUP] Background upload cleanup started")

    if not settings.winston_api_key:
        logger.warning("[STARTUP] WINSTON_API_KEY is not set; /detect-image will return 500")

    yield

    if cleanup_task:
        cleanup_task.cancel()
        try:
            await cleanup_task
        except asyncio.CancelledError:
            pass
        logger.info("[SHUTDOWN] Background upload cleanup stopped")
    await http_client.close()


app = FastAPI(title="SignAi Winston Relay", lifespan=lifespan)


# ---- Global Exception Handler ----
# Error responses must carry CORS headers or the browser hides the JSON body
# from the frontend.
@app.exception_handler(StarletteHTTPException)
async def custom_http_exception_handler(request: Request, exc: StarletteHTTPException):
    headers = dict(getattr(exc, "headers", None) or {})
    headers["Access-Control-Allow-Origin"] = "*"

    if isinstance(exc, DetectionError):
        content = exc.to_body()
    else:
        content = {"detail": exc.detail}
    logger.info(f"[ERROR HANDLER] Returning {exc.status_code} to client: {exc.detail}")

    return JSONResponse(status_code=exc.status_code, content=content, headers=headers)


# ---- CORS ----
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(system.router)
app.include_router(uploads.router)
app.include_router(detection.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=settings.port)
