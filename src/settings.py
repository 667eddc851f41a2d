"""Project-wide settings and shared game constants.

All environment-dependent values are read **lazily** on first access
(not at import time) and cached via ``functools.lru_cache``.  Call
``reset()`` in tests to clear the cache after changing env vars.
"""

from __future__ import annotations

import functools
import os
from pathlib import Path
from typing import TYPE_CHECKING, Final

from src.paths import STATE_DIR as _DEFAULT_STATE_DIR


def _float_env(name: str, default: float) -> float:
    """Parse float environment values with a safe fallback."""
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


# ── Constants (never change at runtime) ──────────────────────────────────
TOTAL_LEVELS: Final[int] = 30
LEVELS_PER_TIER: Final[int] = 3


# ── Lazy settings cache ──────────────────────────────────────────────────

@functools.lru_cache(maxsize=1)
def _load_settings() -> dict[str, object]:
    """Read env-dependent settings once and cache the result."""
    return {
        "LLM_MODEL_NAME": os.getenv("OPENAI_CHAT_MODEL", "gpt-5.2"),
        "LLM_TEMPERATURE": _float_env("IQ360_TEMPERATURE", 0.7),
        "REQUEST_TIMEOUT": _int_env("IQ360_REQUEST_TIMEOUT", 30),
        "STATE_KEY": os.getenv("IQ360_STATE_KEY", "iq360_state_v2"),
        "STATE_DIR": Path(os.getenv("IQ360_STATE_DIR", str(_DEFAULT_STATE_DIR))),
    }


def reset() -> None:
    """Clear the cached settings — call from tests after monkeypatching env vars."""
    _load_settings.cache_clear()


# Type declarations for static analysis (not set at runtime so
# ``__getattr__`` is invoked on attribute access).
if TYPE_CHECKING:
    LLM_MODEL_NAME: str
    LLM_TEMPERATURE: float
    REQUEST_TIMEOUT: int
    STATE_KEY: str
    STATE_DIR: Path


def __getattr__(name: str) -> object:
    """PEP 562 module-level ``__getattr__`` — provides lazy env reads."""
    settings = _load_settings()
    if name in settings:
        return settings[name]
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
