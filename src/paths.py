"""Centralized path constants for the project.

Persisted session state lives under ``data/state`` by default; override
with ``IQ360_STATE_DIR`` (see ``src.settings``).
"""

from __future__ import annotations

from pathlib import Path

PROJECT_ROOT: Path = Path(__file__).resolve().parents[1]
DATA_DIR: Path = PROJECT_ROOT / "data"
STATE_DIR: Path = DATA_DIR / "state"
