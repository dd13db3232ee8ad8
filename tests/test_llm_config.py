"""Tests for config.llm_config: LLMConfig model, merge, and serialization."""

import pytest

from config.llm_config import LLMConfig
from config.settings import Settings


# ── Construction & defaults ───────────────────────────────────


def test_default_all_none():
    cfg = LLMConfig()
    assert cfg.model is None
    assert cfg.temperature is None
    assert cfg.max_tokens is None


def test_validation_temperature_range():
    with pytest.raises(ValueError):
        LLMConfig(temperature=3.0)  # max 2.0


def test_validation_top_p_range():
    with pytest.raises(ValueError):
        LLMConfig(top_p=-0.1)


# ── merge ─────────────────────────────────────────────────────


def test_merge_override_non_none():
    base = LLMConfig(model="deepseek/deepseek-chat", temperature=0.7, max_tokens=4096)
    merged = base.merge(LLMConfig(temperature=0.0))

    assert merged.model == "deepseek/deepseek-chat"    # kept from base
    assert merged.temperature == 0.0                    # overridden, zero is not None
    assert merged.max_tokens == 4096
    assert merged.top_p is None


def test_merge_does_not_mutate():
    base = LLMConfig(temperature=0.7)
    override = LLMConfig(temperature=0.2)
    merged = base.merge(override)

    assert base.temperature == 0.7
    assert override.temperature == 0.2
    assert merged.temperature == 0.2


def test_merge_empty_override():
    base = LLMConfig(model="a", temperature=0.5)
    merged = base.merge(LLMConfig())
    assert merged.model == "a"
    assert merged.temperature == 0.5


# ── to_litellm_kwargs ────────────────────────────────────────


def test_to_litellm_kwargs_excludes_model_and_none():
    cfg = LLMConfig(model="deepseek/deepseek-chat", max_tokens=2048, temperature=0.0)
    kw = cfg.to_litellm_kwargs()
    # model is NOT included, callers pass it separately
    assert kw == {"max_tokens": 2048, "temperature": 0.0}


def test_to_litellm_kwargs_all_fields():
    cfg = LLMConfig(
        max_tokens=1024,
        temperature=0.2,
        top_p=0.8,
        seed=123,
        stop=["<|end|>"],
        api_base="https://proxy.test/v1",
    )
    assert cfg.to_litellm_kwargs() == {
        "max_tokens": 1024,
        "temperature": 0.2,
        "top_p": 0.8,
        "seed": 123,
        "stop": ["<|end|>"],
        "api_base": "https://proxy.test/v1",
    }


def test_to_litellm_kwargs_empty():
    assert LLMConfig().to_litellm_kwargs() == {}


# ── Settings integration ──────────────────────────────────────


def test_code_config_is_deterministic():
    s = Settings(_env_file=None, code_model="openai/gpt-4o", code_max_tokens=4000)
    cfg = s.get_code_llm_config()
    assert cfg.model == "openai/gpt-4o"
    assert cfg.max_tokens == 4000
    assert cfg.temperature == 0.0


def test_chat_config_from_settings():
    s = Settings(_env_file=None, chat_temperature=0.4)
    cfg = s.get_chat_llm_config()
    assert cfg.model == "deepseek/deepseek-chat"
    assert cfg.temperature == 0.4
    assert cfg.max_tokens == 2048


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv("SECTION_GRAMMAR", "tag")
    monkeypatch.setenv("MAX_CONCURRENT_GENERATIONS", "3")
    s = Settings(_env_file=None)
    assert s.section_grammar.value == "tag"
    assert s.max_concurrent_generations == 3
