"""Reusable LLM generation parameters.

LLMConfig is a standalone Pydantic model that can be:
- built from Settings for code generation or chat,
- passed per-call for one-off overrides.

Priority chain (low → high):
    Settings defaults  →  per-call overrides
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class LLMConfig(BaseModel):
    """LLM generation parameters. ``None`` means "use the model's default"."""

    model: str | None = Field(default=None, description="LiteLLM model identifier")
    max_tokens: int | None = Field(default=None, description="Max tokens to generate")
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    top_p: float | None = Field(default=None, ge=0.0, le=1.0)
    seed: int | None = Field(default=None, description="Random seed for reproducibility")
    stop: list[str] | None = Field(default=None, description="Stop sequences")
    api_base: str | None = Field(default=None, description="Override provider endpoint")

    def merge(self, overrides: LLMConfig) -> LLMConfig:
        """Return a new LLMConfig: *self* as base, *overrides* wins on non-None fields."""
        base = self.model_dump(exclude_none=True)
        base.update(overrides.model_dump(exclude_none=True))
        return LLMConfig(**base)

    def to_litellm_kwargs(self) -> dict:
        """Convert to ``litellm.acompletion()`` keyword arguments (without ``model``)."""
        kw: dict = {}
        for field in ("max_tokens", "temperature", "top_p", "seed", "stop", "api_base"):
            val = getattr(self, field)
            if val is not None:
                kw[field] = val
        return kw
