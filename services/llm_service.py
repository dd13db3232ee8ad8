"""Unified LLM service powered by LiteLLM.

Supports any provider LiteLLM supports via model name prefix:
    - deepseek/deepseek-chat
    - openai/gpt-4o
    - anthropic/claude-sonnet-4-20250514
"""

from __future__ import annotations

import logging

import litellm

from config.llm_config import LLMConfig
from config.settings import get_settings
from services.token_source import translate_provider_error

logger = logging.getLogger(__name__)


class LLMService:
    """Thin wrapper around ``litellm.acompletion()`` for single-shot replies.

    Accepts an optional :class:`LLMConfig` that is merged on top of the
    chat defaults from Settings.  Individual calls can still override
    any parameter via ``**overrides``.

    Priority chain (low → high):
        .env chat defaults  →  service-level LLMConfig  →  per-call overrides
    """

    def __init__(self, config: LLMConfig | None = None, model: str | None = None):
        self._config = get_settings().get_chat_llm_config()
        if config:
            self._config = self._config.merge(config)
        if model:
            self._config = self._config.merge(LLMConfig(model=model))

    @property
    def model(self) -> str | None:
        return self._config.model

    async def chat(self, message: str, system: str = "", **overrides) -> str:
        """Send one user message and return the assistant's text.

        Raises:
            UpstreamError:  provider answered with a non-success status.
            TransportError: connection failed or timed out.
        """
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": message})

        kwargs: dict = {
            "model": self._config.model,
            "messages": messages,
            **self._config.to_litellm_kwargs(),
        }
        kwargs.update(overrides)

        try:
            response = await litellm.acompletion(**kwargs)
        except Exception as exc:
            mapped = translate_provider_error(exc)
            if mapped is exc:
                raise
            logger.warning("Chat completion failed: %s", mapped)
            raise mapped from exc

        content = response.choices[0].message.content or ""
        if not content:
            logger.warning("Chat completion returned empty content (model=%s)", self.model)
        return content
