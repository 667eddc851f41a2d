"""Shared data definitions for the leveled assessment session.

Levels and coaching feedback come from the external collaborator and
are validated here on the way in.  ``Snapshot`` is the one record that
gets persisted; its camelCase wire shape is
``{profile, levelNumber, history}``.
"""

from __future__ import annotations

from enum import Enum

from pydantic import Field, field_validator

from src.models.profile import CamelModel, Cii, CognitiveProfile


class GameState(str, Enum):
    WELCOME = "WELCOME"
    LEVEL_ACTIVE = "LEVEL_ACTIVE"
    COACHING = "COACHING"
    DASHBOARD = "DASHBOARD"
    HISTORY = "HISTORY"


NAVIGATIONAL_STATES = frozenset({GameState.DASHBOARD, GameState.HISTORY})


class Question(CamelModel):
    id: str
    text: str
    type: str  # logic, scenario, executive, innovation, psychological, life_business


class Level(CamelModel):
    id: int
    title: str
    scenario_introduction: str
    questions: list[Question] = Field(min_length=1)

    @field_validator("questions")
    @classmethod
    def _unique_question_ids(cls, questions: list[Question]) -> list[Question]:
        ids = [q.id for q in questions]
        if len(ids) != len(set(ids)):
            raise ValueError("question ids must be unique within a level")
        return questions

    @property
    def question_ids(self) -> list[str]:
        return [q.id for q in self.questions]


class UserResponse(CamelModel):
    question_id: str
    answer: str


class CoachingFeedback(CamelModel):
    thinking_insight: str
    life_application: str
    business_application: str
    coach_recommendation: str
    level_progress_summary: str
    updated_profile: CognitiveProfile | None = None


class HistoryEntry(CamelModel):
    level_number: int
    timestamp: int  # epoch milliseconds
    cii: Cii
    feedback: CoachingFeedback
    title: str


class Snapshot(CamelModel):
    """Everything that survives a restart."""

    profile: CognitiveProfile
    level_number: int = 1
    history: list[HistoryEntry] = Field(default_factory=list)
