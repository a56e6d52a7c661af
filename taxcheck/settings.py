from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_OCR_API_VERSION = "2023-07-31"
DEFAULT_OCR_MODEL = "prebuilt-read"
DEFAULT_OPENAI_API_VERSION = "2023-12-01-preview"
DEFAULT_CORS_ORIGINS = "*"
DEFAULT_RATE_LIMIT_WINDOW_SECONDS = 15 * 60
DEFAULT_RATE_LIMIT_MAX_REQUESTS = 100

TRUTHY_FLAGS = {"true", "1"}


@dataclass(frozen=True)
class OcrProviderConfig:
    endpoint: str
    api_key: str
    api_version: str = DEFAULT_OCR_API_VERSION
    model_id: str = DEFAULT_OCR_MODEL


@dataclass(frozen=True)
class AiProviderConfig:
    endpoint: str
    api_key: str
    deployment: str
    api_version: str = DEFAULT_OPENAI_API_VERSION


@dataclass(frozen=True)
class Settings:
    ocr: OcrProviderConfig | None
    ai: AiProviderConfig | None
    force_mock: bool
    cors_allowed_origins: list[str]
    rate_limit_window_seconds: float = DEFAULT_RATE_LIMIT_WINDOW_SECONDS
    rate_limit_max_requests: int = DEFAULT_RATE_LIMIT_MAX_REQUESTS


def _env(name: str) -> str:
    return (os.getenv(name) or "").strip()


def _endpoint(name: str) -> str:
    return _env(name).rstrip("/")


def _int_env(name: str, default: int) -> int:
    raw = _env(name)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def load_ocr_config() -> OcrProviderConfig | None:
    endpoint = _endpoint("AZURE_DOCUMENT_INTELLIGENCE_ENDPOINT")
    api_key = _env("AZURE_DOCUMENT_INTELLIGENCE_KEY")
    if not (endpoint and api_key):
        return None
    return OcrProviderConfig(
        endpoint=endpoint,
        api_key=api_key,
        api_version=_env("AZURE_DOCUMENT_INTELLIGENCE_API_VERSION") or DEFAULT_OCR_API_VERSION,
        model_id=_env("AZURE_DOCUMENT_INTELLIGENCE_MODEL") or DEFAULT_OCR_MODEL,
    )


def load_ai_config() -> AiProviderConfig | None:
    endpoint = _endpoint("AZURE_OPENAI_ENDPOINT")
    api_key = _env("AZURE_OPENAI_KEY")
    deployment = _env("AZURE_OPENAI_DEPLOYMENT_NAME")
    if not (endpoint and api_key and deployment):
        return None
    return AiProviderConfig(
        endpoint=endpoint,
        api_key=api_key,
        deployment=deployment,
        api_version=_env("AZURE_OPENAI_API_VERSION") or DEFAULT_OPENAI_API_VERSION,
    )


def mock_mode_forced() -> bool:
    # FALLBACK_TO_MOCK is the older name of the same switch.
    for name in ("USE_MOCK_AI", "FALLBACK_TO_MOCK"):
        if _env(name).lower() in TRUTHY_FLAGS:
            return True
    return False


def load_settings() -> Settings:
    """Read the process configuration from the environment.

    Provider configs are all-or-nothing: a provider with any required value
    missing is treated as not configured.
    """
    origins = [
        origin.strip()
        for origin in (os.getenv("TAXCHECK_CORS_ALLOWED_ORIGINS") or DEFAULT_CORS_ORIGINS).split(",")
        if origin.strip()
    ]
    return Settings(
        ocr=load_ocr_config(),
        ai=load_ai_config(),
        force_mock=mock_mode_forced(),
        cors_allowed_origins=origins or [DEFAULT_CORS_ORIGINS],
        rate_limit_window_seconds=_int_env(
            "TAXCHECK_RATE_LIMIT_WINDOW_SECONDS", DEFAULT_RATE_LIMIT_WINDOW_SECONDS
        ),
        rate_limit_max_requests=_int_env(
            "TAXCHECK_RATE_LIMIT_MAX_REQUESTS", DEFAULT_RATE_LIMIT_MAX_REQUESTS
        ),
    )


def describe_settings(settings: Settings) -> dict:
    ai_configured = settings.ai is not None
    return {
        "ocr_configured": settings.ocr is not None,
        "ai_configured": ai_configured and not settings.force_mock,
        "mock_mode": settings.force_mock or not ai_configured,
    }
