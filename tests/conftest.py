"""
Shared pytest fixtures for all test modules.

IMPORTANT: TESTING must be set before the app is imported so the lifespan
skips the asyncio background cleanup task.
"""

import io
import os
import tempfile

os.environ["TESTING"] = "true"
# Settings are read once at import; give the app a key and a throwaway
# staging directory before that happens. Winston is never called for real.
os.environ.setdefault("WINSTON_API_KEY", "stub-key-for-tests")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="signai-test-uploads-"))

import pytest
from fastapi.testclient import TestClient
from PIL import Image

# App import happens AFTER os.environ["TESTING"] is set above.
from app.config import settings  # noqa: E402
from app.main import app  # noqa: E402


# ---------------------------------------------------------------------------
# Core infrastructure fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    """Point staging at a per-test directory."""
    path = tmp_path / "uploads"
    path.mkdir()
    monkeypatch.setattr(settings, "upload_dir", str(path))
    return path


@pytest.fixture
def client(upload_dir):
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c


# ---------------------------------------------------------------------------
# Shared test-data helpers
# ---------------------------------------------------------------------------


def _encode(size: tuple[int, int], fmt: str, **save_kwargs) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color=(128, 128, 128)).save(buf, format=fmt, **save_kwargs)
    return buf.getvalue()


def make_png(width: int = 300, height: int = 300) -> bytes:
    return _encode((width, height), "PNG")


def make_jpeg(width: int = 300, height: int = 300, progressive: bool = False) -> bytes:
    return _encode((width, height), "JPEG", progressive=progressive)


def make_webp(width: int = 300, height: int = 300) -> bytes:
    return _encode((width, height), "WEBP")


# Shapes Winston has answered with
WINSTON_REST_RESPONSE = {
    "score": 12,
    "version": "2",
    "ai_probability": 0.91,
    "human_probability": 0.09,
    "credits_used": 300,
}

WINSTON_MCP_RESPONSE = {
    "jsonrpc": "2.0",
    "id": 2,
    "result": {
        "content": [
            {"type": "text", "text": '{"ai_probability": 0.12, "human_probability": 0.88}'}
        ],
        "isError": False,
    },
}

WINSTON_MCP_ERROR = {
    "jsonrpc": "2.0",
    "id": 2,
    "result": {
        "content": [{"type": "text", "text": "Invalid API key"}],
        "isError": True,
    },
}
