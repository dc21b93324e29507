"""Environment-based configuration for the pipeline."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from .exceptions import ConfigError

PROVIDER_MODES = ("auto", "gemini", "openai")


@dataclass(frozen=True)
class Settings:
    gemini_api_key: str | None
    gemini_base_url: str
    gemini_model: str

    openai_api_key: str | None
    openai_base_url: str
    openai_model: str

    provider_mode: str
    llm_timeout_sec: int
    llm_max_attempts: int
    llm_retry_base_delay_sec: float

    extraction_batch_size: int
    extraction_batch_delay_sec: float
    extraction_max_input_chars: int

    synthesis_prompt_path: Path | None
    field_context: str | None

    network_trust_env: bool
    log_level: str


_FALSE_VALUES = {"0", "false", "no", "off", ""}


def _read_env(*keys: str, default: str | None = None) -> str | None:
    for key in keys:
        value = os.getenv(key)
        if value is not None and value != "":
            return value
    return default


def _read_bool(*keys: str, default: bool) -> bool:
    raw = _read_env(*keys)
    if raw is None:
        return default
    return raw.strip().lower() not in _FALSE_VALUES


def _read_int(*keys: str, default: int) -> int:
    raw = _read_env(*keys)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"Invalid integer for {keys[0]}: {raw}") from exc


def _read_float(*keys: str, default: float) -> float:
    raw = _read_env(*keys)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigError(f"Invalid float for {keys[0]}: {raw}") from exc


def load_settings(dotenv_path: str | Path | None = None) -> Settings:
    """Load project settings from .env and OS env vars.

    Missing API keys are not reported here; the orchestrator raises
    ``ProviderUnavailable`` when it is built without any backend.
    """

    load_dotenv(dotenv_path=dotenv_path, override=False)

    provider_mode = (_read_env("AI_PROVIDER", default="auto") or "auto").strip().lower()
    if provider_mode not in PROVIDER_MODES:
        joined = ", ".join(PROVIDER_MODES)
        raise ConfigError(f"Invalid AI_PROVIDER: {provider_mode} (expected one of {joined})")

    max_attempts = _read_int("LLM_MAX_ATTEMPTS", default=3)
    if max_attempts < 1:
        raise ConfigError(f"LLM_MAX_ATTEMPTS must be >= 1, got {max_attempts}")

    batch_size = _read_int("EXTRACTION_BATCH_SIZE", default=3)
    if batch_size < 1:
        raise ConfigError(f"EXTRACTION_BATCH_SIZE must be >= 1, got {batch_size}")

    prompt_path_raw = _read_env("SYNTHESIS_PROMPT_PATH")

    return Settings(
        gemini_api_key=_read_env("GEMINI_API_KEY", "GOOGLE_API_KEY"),
        gemini_base_url=(
            _read_env(
                "GEMINI_BASE_URL",
                default="https://generativelanguage.googleapis.com/v1beta/openai",
            )
            or "https://generativelanguage.googleapis.com/v1beta/openai"
        ).rstrip("/"),
        gemini_model=_read_env("GEMINI_MODEL", default="gemini-2.0-flash")
        or "gemini-2.0-flash",
        openai_api_key=_read_env("OPENAI_API_KEY", "API_KEY"),
        openai_base_url=(
            _read_env(
                "OPENAI_BASE_URL", "BASE_URL", default="https://api.openai.com/v1"
            )
            or "https://api.openai.com/v1"
        ).rstrip("/"),
        openai_model=_read_env("OPENAI_MODEL", default="gpt-4o-mini") or "gpt-4o-mini",
        provider_mode=provider_mode,
        llm_timeout_sec=_read_int("LLM_TIMEOUT_SEC", default=120),
        llm_max_attempts=max_attempts,
        llm_retry_base_delay_sec=_read_float("LLM_RETRY_BASE_DELAY_SEC", default=2.0),
        extraction_batch_size=batch_size,
        extraction_batch_delay_sec=_read_float(
            "EXTRACTION_BATCH_DELAY_SEC", default=0.5
        ),
        extraction_max_input_chars=_read_int(
            "EXTRACTION_MAX_INPUT_CHARS", default=120_000
        ),
        synthesis_prompt_path=Path(prompt_path_raw) if prompt_path_raw else None,
        field_context=_read_env("FIELD_CONTEXT"),
        network_trust_env=_read_bool("NETWORK_TRUST_ENV", default=False),
        log_level=(_read_env("LOG_LEVEL", default="INFO") or "INFO").upper(),
    )
