"""Factory helpers for creating session snapshots."""

from __future__ import annotations

from src.models.profile import default_profile
from src.models.state import Snapshot


def new_snapshot() -> Snapshot:
    """Return the snapshot of a brand-new session: default profile, level 1, no history."""
    return Snapshot(profile=default_profile(), level_number=1, history=[])
