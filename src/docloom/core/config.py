"""Configuration loading (TOML, env vars, .env)."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from docloom.types.config import Settings

# Load .env from current directory (and parents), won't override existing env vars
load_dotenv()

logger = logging.getLogger(__name__)

ENV_MAP = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
}

_INT_SETTINGS = ("max_turns", "max_repairs", "max_retries", "max_tokens")


def load_env_config() -> dict[str, Any]:
    """Load configuration from ``DOCLOOM_*`` environment variables."""
    config: dict[str, Any] = {}

    if model := os.environ.get("DOCLOOM_MODEL"):
        config["model"] = model
    if provider := os.environ.get("DOCLOOM_PROVIDER"):
        config["provider"] = provider
    if base_url := os.environ.get("DOCLOOM_BASE_URL"):
        config["base_url"] = base_url
    if key := os.environ.get("DOCLOOM_API_KEY"):
        config["api_key"] = key
    if cache_dir := os.environ.get("DOCLOOM_CACHE_DIR"):
        config["cache_dir"] = cache_dir
    if template_dir := os.environ.get("DOCLOOM_TEMPLATE_DIR"):
        config["template_dirs"] = [template_dir]
    for name in _INT_SETTINGS:
        if value := os.environ.get(f"DOCLOOM_{name.upper()}"):
            config[name] = value

    return config


def load_toml_config(cwd: str | None = None) -> dict[str, Any]:
    """Load configuration from ``.docloom/config.toml`` if it exists.

    The project directory wins over ``~/.docloom/config.toml``.
    """
    candidates: list[Path] = []
    if cwd:
        candidates.append(Path(cwd) / ".docloom" / "config.toml")
    candidates.append(Path.cwd() / ".docloom" / "config.toml")
    candidates.append(Path.home() / ".docloom" / "config.toml")

    for toml_path in candidates:
        if not toml_path.exists():
            continue
        try:
            import tomllib

            with open(toml_path, "rb") as f:
                return tomllib.load(f)
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable config %s: %s", toml_path, exc)
    return {}


def load_settings(cwd: str | None = None, **overrides: Any) -> Settings:
    """Resolve :class:`Settings` from defaults, TOML, environment and *overrides*.

    ``None`` overrides are ignored so CLI options that were not given fall
    through to the lower layers.  Integer settings that fail to parse keep
    their default.
    """
    merged: dict[str, Any] = {}
    toml = load_toml_config(cwd)
    merged.update({k: v for k, v in toml.items() if not isinstance(v, dict)})
    merged.update(toml.get("generate", {}))
    merged.update(load_env_config())
    merged.update({k: v for k, v in overrides.items() if v is not None})

    settings = Settings()
    for name in ("model", "provider", "api_key", "base_url"):
        if name in merged:
            setattr(settings, name, str(merged[name]))
    for name in _INT_SETTINGS:
        if name in merged:
            setattr(settings, name, _as_int(merged[name], getattr(settings, name)))
    if "temperature" in merged:
        try:
            settings.temperature = float(merged["temperature"])
        except (TypeError, ValueError):
            logger.warning("Ignoring invalid temperature %r", merged["temperature"])
    if "cache_dir" in merged:
        settings.cache_dir = Path(merged["cache_dir"]).expanduser()
    if "template_dirs" in merged:
        settings.template_dirs = tuple(Path(p).expanduser() for p in merged["template_dirs"])
    if "agent_dirs" in merged:
        settings.agent_dirs = tuple(Path(p).expanduser() for p in merged["agent_dirs"])
    return settings


def _as_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning("Ignoring non-integer setting %r, using %d", value, default)
        return default


def resolve_api_key(provider: str, explicit_key: str | None = None) -> str | None:
    """Resolve API key for a provider from explicit value or environment."""
    if explicit_key:
        return explicit_key

    env_var = ENV_MAP.get(provider)
    if env_var:
        val = os.environ.get(env_var)
        if val:
            return val

    return os.environ.get("DOCLOOM_API_KEY")
