"""Append-only history of completed levels.

History is the single source of truth for which level comes next.  Any
separately stored level counter is derived from it, never the other way
round.
"""

from __future__ import annotations

from collections.abc import Sequence

from src.models.state import HistoryEntry


def append(history: Sequence[HistoryEntry], entry: HistoryEntry) -> list[HistoryEntry]:
    """Return a new history with ``entry`` at the end.

    Entries are never deduplicated by level number: a level replayed
    after a reset mid-flow legitimately appears twice.
    """
    return [*history, entry]


def latest_level_number(history: Sequence[HistoryEntry]) -> int:
    """Number of the level to play next (1 for an empty history)."""
    if not history:
        return 1
    return history[-1].level_number + 1
