"""``PARAM_<UPPER_SNAKE>`` environment parameter passing.

The calling side builds the environment with :func:`build_param_env`; agents
written in Python can read values back with :func:`read_param`,
:func:`read_bool_param` and :func:`read_int_param`.
"""

from __future__ import annotations

import json
import os
import re
from collections.abc import Mapping
from typing import Any

PARAM_PREFIX = "PARAM_"

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_NON_WORD = re.compile(r"[^A-Za-z0-9]+")


def param_env_name(name: str) -> str:
    """Map a parameter name to its environment variable.

    >>> param_env_name("filePath")
    'PARAM_FILE_PATH'
    >>> param_env_name("include-tests")
    'PARAM_INCLUDE_TESTS'
    """
    snake = _CAMEL_BOUNDARY.sub("_", name)
    snake = _NON_WORD.sub("_", snake).strip("_")
    return PARAM_PREFIX + snake.upper()


def format_param_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value)
    return str(value)


def build_param_env(*layers: Mapping[str, Any]) -> dict[str, str]:
    """Flatten parameter *layers* into ``PARAM_*`` variables; later layers win.

    ``None`` values are skipped.
    """
    env: dict[str, str] = {}
    for layer in layers:
        for name, value in layer.items():
            if value is None:
                continue
            env[param_env_name(name)] = format_param_value(value)
    return env


def read_param(name: str, default: str | None = None, environ: Mapping[str, str] | None = None) -> str | None:
    env = os.environ if environ is None else environ
    return env.get(param_env_name(name), default)


def read_bool_param(name: str, default: bool = False, environ: Mapping[str, str] | None = None) -> bool:
    """Read a boolean parameter; only ``true``/``false`` (any case) are recognised."""
    raw = read_param(name, environ=environ)
    if raw is None:
        return default
    lowered = raw.strip().lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    return default


def read_int_param(name: str, default: int = 0, environ: Mapping[str, str] | None = None) -> int:
    """Read an integer parameter, falling back to *default* when it does not parse."""
    raw = read_param(name, environ=environ)
    if raw is None:
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default
