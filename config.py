"""Run configuration read once from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

from errors import ConfigError

DEFAULT_CLAUDE_MODEL = "claude-sonnet-4-20250514"
DEFAULT_OPENAI_MODEL = "gpt-5.2"
_PROVIDERS = ("anthropic", "openai")


@dataclass(frozen=True, slots=True)
class PipelineConfig:
    """Tuning knobs for one pipeline run. Not part of any algorithm's contract."""

    batch_size: int = 50
    start_from: int = 0
    reprocess: bool = False
    records_csv_path: str = "records.csv"
    llm_provider: str = "anthropic"
    anthropic_api_key: str | None = None
    claude_model: str = DEFAULT_CLAUDE_MODEL
    openai_api_key: str | None = None
    openai_model: str = DEFAULT_OPENAI_MODEL
    openai_temperature: float = 0.1
    classify_delay_seconds: float = 1.0
    extract_delay_seconds: float = 0.2
    scrape_delay_seconds: float = 0.4

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> PipelineConfig:
        env = os.environ if environ is None else environ

        provider = env.get("LLM_PROVIDER", "anthropic").strip().lower()
        if provider not in _PROVIDERS:
            raise ConfigError(f"LLM_PROVIDER must be one of {_PROVIDERS}, got {provider!r}")

        batch_size = _int(env, "BATCH_SIZE", 50)
        if batch_size < 1:
            raise ConfigError("BATCH_SIZE must be >= 1")
        start_from = _int(env, "START_FROM", 0)
        if start_from < 0:
            raise ConfigError("START_FROM must be >= 0")

        return cls(
            batch_size=batch_size,
            start_from=start_from,
            reprocess=env.get("REPROCESS", "false").strip().lower() in {"1", "true", "yes"},
            records_csv_path=env.get("RECORDS_CSV_PATH", "records.csv"),
            llm_provider=provider,
            anthropic_api_key=env.get("ANTHROPIC_API_KEY") or None,
            claude_model=env.get("CLAUDE_MODEL", DEFAULT_CLAUDE_MODEL),
            openai_api_key=env.get("OPENAI_API_KEY") or None,
            openai_model=env.get("OPENAI_MODEL", DEFAULT_OPENAI_MODEL),
            openai_temperature=_float(env, "OPENAI_TEMPERATURE", 0.1),
            classify_delay_seconds=_float(env, "CLASSIFY_DELAY_SECONDS", 1.0),
            extract_delay_seconds=_float(env, "EXTRACT_DELAY_SECONDS", 0.2),
            scrape_delay_seconds=_float(env, "SCRAPE_DELAY_SECONDS", 0.4),
        )


def _int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"{key} must be an integer, got {raw!r}") from exc


def _float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigError(f"{key} must be a number, got {raw!r}") from exc
