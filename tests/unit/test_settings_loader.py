"""Unit tests for the settings loader."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from contracts.settings import ClientConfig, MistralConfig, Settings
from bindings.settings_loader import configure_logging, load_settings, settings_path


SAMPLE_SETTINGS = """\
app:
  name: test-app
  version: "0.2.0"

mistral:
  base_url: "http://127.0.0.1:9000"
  api_key: test-key
  timeout: 5
  chat:
    model: mistral-large-latest
    temperature: 0.2
  embedding:
    model: mistral-embed

openai:
  api_key_env: MY_OPENAI_KEY
  transcription:
    model: whisper-1
    language: en

audit:
  path: audit.jsonl

logging:
  level: debug
"""


class TestSettingsLoader:
    def test_load_valid_settings(self, tmp_path: Path) -> None:
        f = tmp_path / "mistralkit.yaml"
        f.write_text(SAMPLE_SETTINGS)
        s = load_settings(str(f))
        assert s.app.name == "test-app"
        assert s.mistral.base_url == "http://127.0.0.1:9000"
        assert s.mistral.timeout == 5.0
        assert s.mistral.chat.model == "mistral-large-latest"
        assert s.mistral.chat.temperature == 0.2
        assert s.mistral.chat.top_p == 1.0
        assert s.openai.transcription.language == "en"
        assert s.audit.path == "audit.jsonl"

    def test_defaults_for_missing_sections(self, tmp_path: Path) -> None:
        f = tmp_path / "mistralkit.yaml"
        f.write_text("app:\n  name: tiny\n")
        s = load_settings(str(f))
        assert s.mistral.base_url == "https://api.mistral.ai"
        assert s.openai.base_url == "https://api.openai.com"
        assert s.openai.transcription.model == "whisper-1"
        assert s.openai.transcription.temperature == 0.7
        assert s.audit.path is None

    def test_empty_file_gives_defaults(self, tmp_path: Path) -> None:
        f = tmp_path / "empty.yaml"
        f.write_text("")
        assert load_settings(str(f)) == Settings()

    def test_file_not_found(self) -> None:
        with pytest.raises(FileNotFoundError):
            load_settings("/nonexistent/mistralkit.yaml")

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        f = tmp_path / "bad.yaml"
        f.write_text("just a string")
        with pytest.raises(ValueError, match="YAML mapping"):
            load_settings(str(f))

    def test_settings_path_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MISTRALKIT_CONFIG", "/etc/mk.yaml")
        assert settings_path() == "/etc/mk.yaml"
        monkeypatch.delenv("MISTRALKIT_CONFIG")
        assert settings_path() == "./mistralkit.yaml"

    def test_unknown_log_level(self) -> None:
        s = Settings(logging={"level": "chatty"})
        with pytest.raises(ValueError, match="Unknown log level"):
            configure_logging(s)


class TestClientConfig:
    def test_explicit_key_wins(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MISTRAL_API_KEY", "from-env")
        assert MistralConfig(api_key="explicit").resolve_api_key() == "explicit"

    def test_key_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MISTRAL_API_KEY", "from-env")
        assert MistralConfig().resolve_api_key() == "from-env"

    def test_missing_key(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("MISTRAL_API_KEY", raising=False)
        with pytest.raises(ValueError, match="MISTRAL_API_KEY"):
            MistralConfig().resolve_api_key()

    def test_is_immutable(self) -> None:
        config = ClientConfig(base_url="http://x", api_key="k")
        with pytest.raises(ValidationError):
            config.base_url = "http://y"
