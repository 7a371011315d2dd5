"""
Central application configuration.

Every tunable value lives here as a typed, documented field.
Any field can be overridden at runtime via an environment variable of the
same name (case-insensitive), e.g.:

    WINSTON_MODE=rest uvicorn app.main:app        # talk to the REST endpoint
    export MIN_IMAGE_DIMENSION=512                 # stricter upload gate

A `.env` file at the project root is loaded automatically.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,   # WINSTON_API_KEY == winston_api_key
        extra="ignore",         # silently drop unknown env vars
    )

    # ------------------------------------------------------------------ #
    # Winston provider                                                    #
    # ------------------------------------------------------------------ #
    winston_api_key: str = Field(
        "", description="Winston API key (required for /detect-image)"
    )
    winston_mode: str = Field(
        "mcp", description="'mcp' (JSON-RPC tools/call) or 'rest' (v2 image-detection)"
    )
    winston_mcp_url: str = Field(
        "https://api.gowinston.ai/mcp/v1", description="MCP JSON-RPC endpoint"
    )
    winston_rest_url: str = Field(
        "https://api.gowinston.ai/v2/image-detection", description="REST image-detection endpoint"
    )
    winston_model_version: str = Field(
        "2", description="Model version sent with REST requests"
    )

    # ------------------------------------------------------------------ #
    # Provider HTTP                                                       #
    # ------------------------------------------------------------------ #
    provider_timeout_sec: float = Field(
        30.0, description="Total timeout for one provider call (seconds)"
    )
    provider_max_retries: int = Field(
        2, description="Extra attempts on transient provider errors"
    )
    provider_retry_initial_delay: float = Field(
        1.0, description="First retry delay (seconds)"
    )
    provider_retry_max_delay: float = Field(
        5.0, description="Max retry back-off delay (seconds)"
    )
    provider_retry_exp_base: float = Field(
        2.0, description="Exponential back-off multiplier"
    )

    # ------------------------------------------------------------------ #
    # Upload staging                                                      #
    # ------------------------------------------------------------------ #
    upload_dir: str = Field(
        "/tmp/uploads", description="Where staged uploads are written and served from"
    )
    public_base_url: Optional[str] = Field(
        None, description="Public origin of this service; derived from request headers when unset"
    )
    upload_ttl_sec: int = Field(
        600, description="10 min: staged uploads older than this are removed"
    )
    cleanup_interval_sec: int = Field(
        60, description="How often the periodic upload cleanup runs (seconds)"
    )
    self_fetch_enabled: bool = Field(
        True, description="Fetch our own public URL before calling Winston (debug info)"
    )
    self_fetch_timeout_sec: float = Field(
        15.0, description="Timeout for the self-fetch check (seconds)"
    )

    # ------------------------------------------------------------------ #
    # Upload validation                                                   #
    # ------------------------------------------------------------------ #
    min_image_dimension: int = Field(
        256, description="Provider-documented minimum width/height in pixels"
    )
    max_image_upload_mb: int = Field(
        20, description="Max MB for multipart image uploads"
    )

    # ------------------------------------------------------------------ #
    # HTTP server                                                         #
    # ------------------------------------------------------------------ #
    cors_allow_origins: list[str] = Field(
        default_factory=lambda: ["*"], description="Origins allowed by CORS"
    )
    port: int = Field(10000, description="Port used by `python -m app.main`")

    @property
    def max_image_upload_bytes(self) -> int:
        return self.max_image_upload_mb * 1024 * 1024


# Single shared instance; import this everywhere.
settings = Settings()
