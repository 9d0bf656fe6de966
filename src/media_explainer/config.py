# src/media_explainer/config.py
"""Runtime configuration read from environment variables."""

import os
import tempfile
from pathlib import Path

from pydantic import BaseModel

DEFAULT_MAX_DOWNLOAD_BYTES = 500 * 1024 * 1024  # 500MB
DEFAULT_WORK_DIR = str(Path(tempfile.gettempdir()) / "media-explainer")


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings(BaseModel):
    """Process-wide settings. Read-mostly; never mutated per request."""
    uploads_dir: str = "/uploads"
    work_dir: str = DEFAULT_WORK_DIR
    max_download_bytes: int = DEFAULT_MAX_DOWNLOAD_BYTES
    download_timeout: float = 60.0
    frame_rate: float = 0.5
    ocr_batch_size: int = 5
    ocr_language: str = "eng"
    stage_url_inputs: bool = True
    log_level: str = "INFO"

    openai_api_key: str | None = None
    openai_model: str = "gpt-4o-mini"

    supabase_url: str | None = None
    supabase_key: str | None = None
    supabase_bucket: str = "api-content"

    @property
    def storage_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)

    @property
    def model_configured(self) -> bool:
        return bool(self.openai_api_key)


def load_settings() -> Settings:
    """Build settings from the environment, falling back to defaults."""
    env = os.environ
    return Settings(
        uploads_dir=env.get("MEDIA_UPLOADS_DIR", "/uploads"),
        work_dir=env.get("MEDIA_WORK_DIR", DEFAULT_WORK_DIR),
        max_download_bytes=int(env.get("MEDIA_MAX_DOWNLOAD_BYTES", DEFAULT_MAX_DOWNLOAD_BYTES)),
        download_timeout=float(env.get("MEDIA_DOWNLOAD_TIMEOUT", 60)),
        frame_rate=float(env.get("MEDIA_FRAME_RATE", 0.5)),
        ocr_batch_size=int(env.get("MEDIA_OCR_BATCH_SIZE", 5)),
        ocr_language=env.get("MEDIA_OCR_LANGUAGE", "eng"),
        stage_url_inputs=_env_flag("MEDIA_STAGE_URL_INPUTS", True),
        log_level=env.get("MEDIA_LOG_LEVEL", "INFO").upper(),
        openai_api_key=env.get("OPENAI_API_KEY") or None,
        openai_model=env.get("OPENAI_MODEL", "gpt-4o-mini"),
        supabase_url=env.get("SUPABASE_URL") or None,
        supabase_key=env.get("SUPABASE_ANON_KEY") or None,
        supabase_bucket=env.get("SUPABASE_BUCKET", "api-content"),
    )
