"""Configuration helpers for the meeting summarizer service.

Defaults work for local development (a browser front end on the Vite dev
server talking to the API on port 5000). Everything can be overridden via
environment variables; absent credentials switch the service to its offline
paths instead of failing.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import List

DEFAULT_ALLOWED_ORIGINS = ["http://localhost:5173", "http://127.0.0.1:5173"]


@dataclass
class ServiceSettings:
    host: str = "0.0.0.0"
    port: int = 5000
    reload: bool = False
    log_level: str = "info"
    allowed_origins: List[str] = field(default_factory=lambda: list(DEFAULT_ALLOWED_ORIGINS))
    request_id_header: str = "x-request-id"
    upload_dir: str | None = None
    max_upload_bytes: int | None = 200 * 1024 * 1024

    transcription_backend: str = "local"
    whisper_command: str = "whisper"
    whisper_model: str = "small"
    whisper_language: str = "en"
    transcription_timeout: float = 600.0
    transcription_api_key: str | None = None
    transcription_base_url: str = "https://api.openai.com/v1"
    transcription_model: str = "whisper-1"

    summarizer_provider: str = "openrouter"
    summarizer_api_key: str | None = None
    summarizer_base_url: str = "https://openrouter.ai/api/v1"
    summarizer_model: str = "openai/gpt-4o-mini"
    hf_model_url: str = "https://api-inference.huggingface.co/models/facebook/bart-large-cnn"
    request_timeout: float = 60.0

    @classmethod
    def from_env(cls) -> "ServiceSettings":
        """Load settings from environment variables with safe defaults."""

        def as_bool(value: str, default: bool) -> bool:
            truthy = {"1", "true", "t", "yes", "y"}
            falsy = {"0", "false", "f", "no", "n"}
            if value.lower() in truthy:
                return True
            if value.lower() in falsy:
                return False
            return default

        def as_int(value: str | None, default: int | None) -> int | None:
            if value is None:
                return default
            if value.lower() in {"none", "", "-1"}:
                return None
            return int(value)

        def as_list(value: str | None, default: List[str]) -> List[str]:
            if value is None:
                return list(default)
            return [item.strip() for item in value.split(",") if item.strip()]

        def blank_to_none(value: str | None) -> str | None:
            if value is None:
                return None
            return value.strip() or None

        provider = os.getenv("MEETING_SUMMARIZER_PROVIDER", cls.summarizer_provider).strip().lower()
        key_variable = "HF_API_KEY" if provider == "huggingface" else "OPENROUTER_API_KEY"
        summarizer_api_key = blank_to_none(os.getenv(key_variable))

        return cls(
            host=os.getenv("MEETING_HOST", cls.host),
            port=int(os.getenv("MEETING_PORT", os.getenv("PORT", cls.port))),
            reload=as_bool(os.getenv("MEETING_RELOAD", str(cls.reload)), cls.reload),
            log_level=os.getenv("MEETING_LOG_LEVEL", cls.log_level),
            allowed_origins=as_list(os.getenv("MEETING_ALLOWED_ORIGINS"), DEFAULT_ALLOWED_ORIGINS),
            request_id_header=os.getenv("MEETING_REQUEST_ID_HEADER", cls.request_id_header),
            upload_dir=blank_to_none(os.getenv("MEETING_UPLOAD_DIR")),
            max_upload_bytes=as_int(os.getenv("MEETING_MAX_UPLOAD_BYTES"), cls.max_upload_bytes),
            transcription_backend=os.getenv("MEETING_TRANSCRIPTION_BACKEND", cls.transcription_backend)
            .strip()
            .lower(),
            whisper_command=os.getenv("MEETING_WHISPER_COMMAND", cls.whisper_command),
            whisper_model=os.getenv("MEETING_WHISPER_MODEL", cls.whisper_model),
            whisper_language=os.getenv("MEETING_WHISPER_LANGUAGE", cls.whisper_language),
            transcription_timeout=float(os.getenv("MEETING_TRANSCRIPTION_TIMEOUT", cls.transcription_timeout)),
            transcription_api_key=blank_to_none(
                os.getenv("MEETING_TRANSCRIPTION_API_KEY", os.getenv("OPENROUTER_API_KEY"))
            ),
            transcription_base_url=os.getenv("MEETING_TRANSCRIPTION_BASE_URL", cls.transcription_base_url),
            transcription_model=os.getenv("MEETING_TRANSCRIPTION_MODEL", cls.transcription_model),
            summarizer_provider=provider,
            summarizer_api_key=summarizer_api_key,
            summarizer_base_url=os.getenv("MEETING_SUMMARIZER_BASE_URL", cls.summarizer_base_url),
            summarizer_model=os.getenv("MEETING_SUMMARIZER_MODEL", cls.summarizer_model),
            hf_model_url=os.getenv("MEETING_HF_MODEL_URL", cls.hf_model_url),
            request_timeout=float(os.getenv("MEETING_REQUEST_TIMEOUT", cls.request_timeout)),
        )


def configure_logging(level: str) -> None:
    """Apply a simple logging configuration for the service."""

    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    # Request lines from the SDK clients are noise at info level.
    logging.getLogger("httpx").setLevel(logging.WARNING)
