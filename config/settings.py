"""Pydantic Settings: typed configuration with .env auto-loading."""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from config.llm_config import LLMConfig
from models.events import SectionGrammar


class Settings(BaseSettings):
    """Application configuration loaded from environment / .env file."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ── Service ──────────────────────────────────────────────
    service_port: int = 5000
    cors_origins: list[str] = ["*"]
    debug: bool = False
    log_level: str = "INFO"
    max_concurrent_generations: int = 15  # per worker, extra requests get 503

    # ── Code generation ──────────────────────────────────────
    code_model: str = "deepseek/deepseek-chat"
    code_max_tokens: int = 8192
    section_grammar: SectionGrammar = SectionGrammar.MARKER
    generation_timeout: float = 300.0  # seconds, whole generation ceiling

    # ── Chat ─────────────────────────────────────────────────
    chat_model: str = "deepseek/deepseek-chat"
    chat_temperature: float = 0.7
    chat_max_tokens: int = 2048

    # Provider API keys (read by LiteLLM automatically via env)
    deepseek_api_key: str = ""

    # ── Media (DeepInfra) ────────────────────────────────────
    deepinfra_api_key: str = ""
    deepinfra_base_url: str = "https://api.deepinfra.com/v1"
    vision_model: str = "deepseek-ai/Janus-Pro-7B"
    image_model: str = "black-forest-labs/FLUX-1-dev"
    image_size: str = "1024x1024"
    video_model: str = "Wan-AI/Wan2.1-T2V-1.3B"
    media_timeout: int = 120  # seconds

    # ── Persistence ──────────────────────────────────────────
    project_store_type: str = "memory"  # "memory" or "redis"
    unlock_store_type: str = "memory"  # "memory" or "redis"
    redis_url: str = ""  # e.g. redis://:password@host:6379/0

    # ── Ad unlocks ───────────────────────────────────────────
    feature_gating_enabled: bool = False
    daily_pass_hours: int = 24
    video_unlock_hours: int = 24
    videos_per_unlock: int = 1
    default_revenue_cents: int = 3

    # ── Helpers ───────────────────────────────────────────────

    def get_code_llm_config(self) -> LLMConfig:
        """LLM parameters for code generation.

        Temperature is always 0.
        """
        return LLMConfig(
            model=self.code_model,
            max_tokens=self.code_max_tokens,
            temperature=0.0,
        )

    def get_chat_llm_config(self) -> LLMConfig:
        return LLMConfig(
            model=self.chat_model,
            max_tokens=self.chat_max_tokens,
            temperature=self.chat_temperature,
        )


@lru_cache
def get_settings() -> Settings:
    """Singleton accessor for application settings."""
    return Settings()
