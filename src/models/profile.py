"""Cognitive profile model: shape, defaults and the update rule.

The profile only ever changes through ``apply_update``, which either
replaces it wholesale with the collaborator's patch or keeps it as is.
Score ranges (CII 70-145, domains 0-100) are nominal; out-of-range
values returned by the collaborator are stored untouched.
"""

from __future__ import annotations

import math
from typing import Annotated, Any, Final

from pydantic import BaseModel, BeforeValidator, ConfigDict
from pydantic.alias_generators import to_camel

from src.settings import LEVELS_PER_TIER


DEFAULT_CII: Final[int] = 100
DEFAULT_DOMAIN_SCORE: Final[float] = 50
DEFAULT_THINKING_STYLE: Final[str] = "Developing Strategist"

# (attribute name, dashboard label) in display order.
DOMAIN_LABELS: Final[tuple[tuple[str, str], ...]] = (
    ("logical_reasoning", "Logic"),
    ("executive_function", "Executive"),
    ("innovation_index", "Innovation"),
    ("emotional_regulation", "Emotion"),
    ("strategic_thinking", "Strategy"),
    ("decision_consistency", "Consistency"),
)

TIER_NAMES: Final[tuple[str, ...]] = (
    "Foundational Logic & Attention",
    "Decision-Making & Intent",
    "Executive Function & Planning",
    "Innovation & Unsolved Problems",
    "Emotional Reasoning & Stress Logic",
    "Financial & Resource Intelligence",
    "Leadership & Ethical Judgment",
    "Systems Thinking & Strategy",
    "Cognitive Flexibility Under Pressure",
    "Integrated Life & Business Mastery",
)


class CamelModel(BaseModel):
    """Immutable model serialized with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class DomainScores(CamelModel):
    logical_reasoning: float
    executive_function: float
    innovation_index: float
    emotional_regulation: float
    strategic_thinking: float
    decision_consistency: float


def round_cii(value: Any) -> Any:
    """Round a finite float CII to an int; leave anything else for pydantic."""
    # The collaborator reports numbers, not integers.
    if isinstance(value, float) and math.isfinite(value):
        return round(value)
    return value


Cii = Annotated[int, BeforeValidator(round_cii)]


class CognitiveProfile(CamelModel):
    cii: Cii
    scores: DomainScores
    thinking_style: str


def default_profile() -> CognitiveProfile:
    """Return the profile every new session starts from."""
    return CognitiveProfile(
        cii=DEFAULT_CII,
        scores=DomainScores(
            **{name: DEFAULT_DOMAIN_SCORE for name, _ in DOMAIN_LABELS}
        ),
        thinking_style=DEFAULT_THINKING_STYLE,
    )


def apply_update(
    current: CognitiveProfile,
    patch: CognitiveProfile | None = None,
) -> CognitiveProfile:
    """Full-replacement update: the patch wins verbatim, or nothing changes."""
    if patch is None:
        return current
    return patch


def coerce_profile(raw: Any) -> CognitiveProfile:
    """Build a profile from loosely-typed stored data.

    Every missing or malformed sub-field falls back to its default on its
    own, so one bad value never discards the rest of a saved profile.
    """
    if not isinstance(raw, dict):
        return default_profile()

    cii = raw.get("cii")
    if isinstance(cii, bool) or not isinstance(cii, (int, float)) or not math.isfinite(cii):
        cii = DEFAULT_CII

    raw_scores = raw.get("scores")
    if not isinstance(raw_scores, dict):
        raw_scores = {}
    scores = {}
    for name, _ in DOMAIN_LABELS:
        value = raw_scores.get(to_camel(name), raw_scores.get(name))
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            value = DEFAULT_DOMAIN_SCORE
        scores[name] = value

    style = raw.get("thinkingStyle", raw.get("thinking_style"))
    if not isinstance(style, str):
        style = DEFAULT_THINKING_STYLE

    return CognitiveProfile(
        cii=cii,
        scores=DomainScores(**scores),
        thinking_style=style,
    )


def tier_for_level(level_number: int) -> int:
    """Tier grouping of a level: ``ceil(level_number / 3)``."""
    return math.ceil(level_number / LEVELS_PER_TIER)


def tier_name(level_number: int) -> str:
    """Theme of the tier a level belongs to (the last theme past tier 10)."""
    index = min(max(tier_for_level(level_number), 1), len(TIER_NAMES)) - 1
    return TIER_NAMES[index]
