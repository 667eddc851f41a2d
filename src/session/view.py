"""Read-only view model consumed by the rendering layers (CLI, web).

Views never mutate the session; they call the machine's operations and
re-read this projection.
"""

from __future__ import annotations

from typing import Any

from pydantic.alias_generators import to_camel

from src.models.profile import DOMAIN_LABELS, CognitiveProfile, tier_for_level, tier_name
from src.session.machine import SessionStateMachine


def domain_breakdown(profile: CognitiveProfile) -> list[dict[str, Any]]:
    """Domain scores in dashboard order, with their short labels."""
    return [
        {
            "domain": to_camel(name),
            "label": label,
            "score": getattr(profile.scores, name),
        }
        for name, label in DOMAIN_LABELS
    ]


def progress_percent(level_number: int) -> int:
    """Share of the ten tiers reached, in steps of ten."""
    return min(tier_for_level(level_number) * 10, 100)


def build_view_model(machine: SessionStateMachine) -> dict[str, Any]:
    level_number = machine.level_number
    return {
        "gameState": machine.state.value,
        "currentLevel": machine.current_level.to_wire() if machine.current_level else None,
        "responses": [r.to_wire() for r in machine.responses],
        "levelNumber": level_number,
        "tier": tier_for_level(level_number),
        "tierName": tier_name(level_number),
        "progressPercent": progress_percent(level_number),
        "profile": machine.profile.to_wire(),
        "domainBreakdown": domain_breakdown(machine.profile),
        # Newest first.
        "history": [entry.to_wire() for entry in reversed(machine.history)],
        "coaching": machine.coaching.to_wire() if machine.coaching else None,
        "loading": machine.loading,
        "error": machine.error,
        "persistent": machine.persistent,
    }
