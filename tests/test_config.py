"""Tests for configuration and AI settings lifecycle."""

from pathlib import Path

import pytest

from config import AISettings, load_ai_settings, load_config, save_ai_settings
from storage import LocalDeckStorage


class TestLoadConfig:
    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for name in ("MAX_ITEMS", "BATCH_SIZE", "CONTENT_LIMIT", "STORAGE_DIR"):
            monkeypatch.delenv(name, raising=False)
        config = load_config()
        assert config.max_items == 10
        assert config.batch_size == 3
        assert config.content_limit == 10000

    def test_env_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MAX_ITEMS", "5")
        monkeypatch.setenv("BATCH_SIZE", "2")
        config = load_config()
        assert config.max_items == 5
        assert config.batch_size == 2


class TestAISettings:
    def test_round_trip(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "ai.json"
        save_ai_settings(path, AISettings(provider="anthropic", api_key="sk-ant-1234", model="claude-x"))
        loaded = load_ai_settings(path)
        assert loaded.provider == "anthropic"
        assert loaded.api_key == "sk-ant-1234"
        assert loaded.resolved_model() == "claude-x"

    def test_missing_file_gives_defaults(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("AI_PROVIDER", raising=False)
        settings = load_ai_settings(tmp_path / "none.json")
        assert settings.provider == "openai"
        assert settings.api_key is None

    def test_corrupt_file_gives_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "ai.json"
        path.write_text("{not json")
        assert load_ai_settings(path) == AISettings()

    def test_key_falls_back_to_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OPENROUTER_API_KEY", "or-key")
        settings = AISettings(provider="openrouter")
        assert settings.resolved_key() == "or-key"
        assert settings.resolved_model() == "google/gemini-2.5-flash"

    def test_masked(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        assert AISettings(api_key="sk-abcdef1234").masked()["api_key"] == "...1234"
        masked = AISettings().masked()
        assert masked["api_key"] is None
        assert masked["connected"] is False


class TestLocalDeckStorage:
    @pytest.mark.asyncio
    async def test_put_writes_file(self, tmp_path: Path) -> None:
        storage = LocalDeckStorage(tmp_path / "decks")
        ref = await storage.put("../Acme Deck.pdf", b"%PDF-1.4")
        path = Path(ref)
        assert path.read_bytes() == b"%PDF-1.4"
        assert path.parent == (tmp_path / "decks").resolve()
        assert path.name.endswith("Acme_Deck.pdf")
