"""Completion route configuration."""
from __future__ import annotations

from pathlib import Path
from typing import Dict

from pydantic import BaseModel, Field

from .settings import Settings, settings as default_settings


class LlmRoute(BaseModel):
    """OpenAI-compatible completion endpoint configuration."""

    name: str
    base_url: str
    endpoint: str = "/chat/completions"
    model: str
    timeout_s: float = Field(ge=0.1)
    max_retries: int = Field(default=3, ge=0)
    backoff_initial_s: float = Field(default=0.8, ge=0.0)
    backoff_factor: float = Field(default=2.0, ge=1.0)
    burst: int = Field(default=3, ge=1)
    rate_per_s: float = Field(default=1.0, gt=0.0)
    temperature: float = 0.2
    api_key_env: str | None = None
    extra_headers: Dict[str, str] = Field(default_factory=dict)


def load_route(path: Path) -> LlmRoute:
    """Load a route definition from a JSON file."""

    data = path.read_text(encoding="utf-8")
    return LlmRoute.model_validate_json(data)


def route_from_settings(cfg: Settings | None = None) -> LlmRoute:
    """Build the default route from environment-driven settings."""

    cfg = cfg or default_settings
    return LlmRoute(
        name="default",
        base_url=cfg.LLM_BASE_URL.rstrip("/"),
        model=cfg.LLM_MODEL,
        timeout_s=cfg.LLM_TIMEOUT_S,
        max_retries=cfg.LLM_MAX_RETRIES,
        backoff_initial_s=cfg.LLM_BACKOFF_INITIAL_S,
        backoff_factor=cfg.LLM_BACKOFF_FACTOR,
        burst=cfg.LLM_BURST,
        rate_per_s=cfg.LLM_RATE_PER_S,
        temperature=cfg.LLM_TEMPERATURE,
        api_key_env=cfg.LLM_API_KEY_ENV,
    )
