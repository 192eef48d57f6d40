"""Application settings and configuration management."""
from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or defaults."""

    DB_PATH: str = Field(default="data/interview.db")

    LLM_BASE_URL: str = "https://api.openai.com/v1"
    LLM_MODEL: str = "gpt-4o-mini"
    LLM_API_KEY_ENV: str = "OPENAI_API_KEY"
    LLM_TIMEOUT_S: float = Field(default=30.0, ge=0.1)
    LLM_MAX_RETRIES: int = Field(default=3, ge=0)
    LLM_BACKOFF_INITIAL_S: float = Field(default=0.8, ge=0.0)
    LLM_BACKOFF_FACTOR: float = Field(default=2.0, ge=1.0)
    LLM_BURST: int = Field(default=3, ge=1)
    LLM_RATE_PER_S: float = Field(default=1.0, gt=0.0)
    LLM_TEMPERATURE: float = 0.2

    ROLE_FOCUS: str = "Full Stack (React/Node)"

    model_config = SettingsConfigDict(env_file=".env", validate_assignment=True, extra="ignore")


settings = Settings()
