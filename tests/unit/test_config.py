"""Tests for docloom.core.config: layered settings."""

from __future__ import annotations

from pathlib import Path

import pytest

from docloom.core.config import load_env_config, load_settings, load_toml_config, resolve_api_key
from docloom.types.config import DEFAULT_MAX_REPAIRS, DEFAULT_MODEL

ENV_VARS = (
    "DOCLOOM_MODEL", "DOCLOOM_PROVIDER", "DOCLOOM_BASE_URL", "DOCLOOM_API_KEY", "DOCLOOM_CACHE_DIR",
    "DOCLOOM_TEMPLATE_DIR", "DOCLOOM_MAX_TURNS", "DOCLOOM_MAX_REPAIRS", "DOCLOOM_MAX_RETRIES",
    "DOCLOOM_MAX_TOKENS", "OPENAI_API_KEY", "ANTHROPIC_API_KEY",
)


@pytest.fixture(autouse=True)
def clean_env(tmp_path: Path, monkeypatch):
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(tmp_path)


def _write_toml(project: Path, text: str) -> None:
    config_dir = project / ".docloom"
    config_dir.mkdir(parents=True, exist_ok=True)
    (config_dir / "config.toml").write_text(text)


class TestLoadSettings:
    def test_defaults(self):
        settings = load_settings()
        assert settings.model == DEFAULT_MODEL
        assert settings.max_repairs == DEFAULT_MAX_REPAIRS
        assert settings.provider is None

    def test_precedence_flag_over_env_over_toml(self, tmp_path: Path, monkeypatch):
        _write_toml(tmp_path, 'model = "gpt-4.1"\nmax_turns = 4\n\n[generate]\nmax_repairs = 5\n')
        monkeypatch.setenv("DOCLOOM_MAX_TURNS", "6")

        settings = load_settings(str(tmp_path), model="sonnet", max_turns=None)

        assert settings.model == "sonnet"
        assert settings.max_turns == 6
        assert settings.max_repairs == 5

    def test_invalid_integer_keeps_default(self, monkeypatch):
        monkeypatch.setenv("DOCLOOM_MAX_REPAIRS", "lots")
        assert load_settings().max_repairs == DEFAULT_MAX_REPAIRS

    def test_paths(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("DOCLOOM_CACHE_DIR", str(tmp_path / "c"))
        monkeypatch.setenv("DOCLOOM_TEMPLATE_DIR", str(tmp_path / "t"))

        settings = load_settings()

        assert settings.cache_dir == tmp_path / "c"
        assert settings.template_dirs == (tmp_path / "t",)

    def test_unreadable_toml_is_ignored(self, tmp_path: Path):
        _write_toml(tmp_path, "this is = = not toml")
        assert load_toml_config(str(tmp_path)) == {}

    def test_env_config_only_reports_set_values(self, monkeypatch):
        monkeypatch.setenv("DOCLOOM_PROVIDER", "anthropic")
        assert load_env_config() == {"provider": "anthropic"}


class TestResolveApiKey:
    def test_order(self, monkeypatch):
        monkeypatch.setenv("DOCLOOM_API_KEY", "generic")
        assert resolve_api_key("openai") == "generic"

        monkeypatch.setenv("OPENAI_API_KEY", "specific")
        assert resolve_api_key("openai") == "specific"
        assert resolve_api_key("openai", "explicit") == "explicit"

    def test_missing(self):
        assert resolve_api_key("anthropic") is None
