"""Unit tests for configuration settings."""

from __future__ import annotations

import pytest

from src.config import settings


@pytest.fixture(autouse=True)
def clear_settings_cache():
    for getter in (settings.get_chat_settings, settings.get_gemini_settings, settings.get_chroma_settings):
        getter.cache_clear()
    yield
    for getter in (settings.get_chat_settings, settings.get_gemini_settings, settings.get_chroma_settings):
        getter.cache_clear()


def test_chat_defaults(monkeypatch):
    for name in ("CHAT_MAX_OUTPUT_TOKENS", "CHAT_TEMPERATURE", "CHAT_SYSTEM_PROMPT_PATH", "STORAGE_ACCOUNT_ENDPOINT"):
        monkeypatch.delenv(name, raising=False)

    cfg = settings.get_chat_settings()

    assert cfg.max_output_tokens == 1024
    assert cfg.temperature == pytest.approx(0.7)
    assert cfg.system_prompt_path is None
    assert cfg.citation_base_url() == ""


def test_citation_base_url_joins_endpoint_and_container(monkeypatch):
    monkeypatch.setenv("STORAGE_ACCOUNT_ENDPOINT", "https://storage.example.com/")
    monkeypatch.setenv("STORAGE_CONTAINER", "content")

    cfg = settings.get_chat_settings()

    assert cfg.citation_base_url() == "https://storage.example.com/content"


def test_blank_prompt_path_is_ignored(monkeypatch):
    monkeypatch.setenv("CHAT_SYSTEM_PROMPT_PATH", "  ")

    assert settings.get_chat_settings().system_prompt_path is None


def test_vision_disabled_by_default(monkeypatch):
    monkeypatch.delenv("VISION_EMBEDDING_MODEL", raising=False)

    assert settings.get_gemini_settings().vision_enabled is False


def test_blank_vision_model_disables_vision(monkeypatch):
    monkeypatch.setenv("VISION_EMBEDDING_MODEL", "")

    assert settings.get_gemini_settings().vision_enabled is False


def test_resolved_timeout_prefers_positive_override(monkeypatch):
    monkeypatch.setenv("GEMINI_REQUEST_TIMEOUT", "30")

    cfg = settings.get_gemini_settings()

    assert cfg.resolved_timeout() == pytest.approx(30.0)
    assert cfg.resolved_timeout(5.0) == pytest.approx(5.0)
    assert cfg.resolved_timeout(0) == pytest.approx(30.0)


def test_chroma_metadata_accepts_json(monkeypatch):
    monkeypatch.setenv("CHROMA_DEFAULT_METADATA", "{\"hnsw:space\": \"cosine\"}")

    cfg = settings.get_chroma_settings()

    assert cfg.metadata == {"hnsw:space": "cosine"}
    assert cfg.image_collection_name == "images"


def test_chroma_metadata_rejects_json_array(monkeypatch):
    monkeypatch.setenv("CHROMA_DEFAULT_METADATA", "[1, 2]")

    with pytest.raises(ValueError):
        settings.get_chroma_settings()
