"""Configuration types for docloom."""

from __future__ import annotations

import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

DEFAULT_MODEL = "gpt-4o"
DEFAULT_MAX_TURNS = 10
DEFAULT_MAX_REPAIRS = 3
DEFAULT_MAX_RETRIES = 3
DEFAULT_MAX_TOKENS = 4096


def default_cache_dir() -> Path:
    return Path(tempfile.gettempdir()) / "docloom-agent-cache"


@dataclass(slots=True)
class Settings:
    """Resolved settings: defaults < config.toml < environment < CLI flags."""

    model: str = DEFAULT_MODEL
    provider: str | None = None
    api_key: str | None = None
    base_url: str | None = None
    max_turns: int = DEFAULT_MAX_TURNS
    max_repairs: int = DEFAULT_MAX_REPAIRS
    max_retries: int = DEFAULT_MAX_RETRIES
    max_tokens: int = DEFAULT_MAX_TOKENS
    temperature: float | None = None
    cache_dir: Path = field(default_factory=default_cache_dir)
    template_dirs: tuple[Path, ...] = ()
    agent_dirs: tuple[Path, ...] = ()


@dataclass(frozen=True, slots=True)
class GenerateRequest:
    """A single document generation request."""

    template: str
    sources: tuple[str, ...]
    output: Path
    agent: str | None = None
    params: dict[str, Any] = field(default_factory=dict)
    force: bool = False
    dry_run: bool = False
    max_repairs: int = DEFAULT_MAX_REPAIRS
    max_turns: int = DEFAULT_MAX_TURNS
