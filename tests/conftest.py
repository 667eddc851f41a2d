"""Shared fixtures: a temp-dir store and stubbed collaborators.

No test here talks to OpenAI; the collaborators are replaced with async
stubs that record their calls.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import pytest

from src.errors import ContentGenerationError, EvaluationError
from src.models.profile import CognitiveProfile, DomainScores
from src.models.state import CoachingFeedback, Level, Question
from src.session.machine import SessionStateMachine
from src.session.store import PersistenceStore

FIXED_NOW_MS = 1_767_225_600_000


def build_level(level_number: int = 1, n_questions: int = 2) -> Level:
    types = ["logic", "scenario", "executive", "innovation", "psychological", "life_business"]
    return Level(
        id=level_number,
        title=f"Level {level_number}: The Bridge Problem",
        scenario_introduction="A town must decide how to rebuild its only bridge.",
        questions=[
            Question(id=f"q{i}", text=f"Question {i}?", type=types[(i - 1) % len(types)])
            for i in range(1, n_questions + 1)
        ],
    )


def build_profile(cii: int = 112, score: float = 60.0, style: str = "Adaptive Analyst") -> CognitiveProfile:
    return CognitiveProfile(
        cii=cii,
        scores=DomainScores(
            logical_reasoning=score,
            executive_function=score,
            innovation_index=score,
            emotional_regulation=score,
            strategic_thinking=score,
            decision_consistency=score,
        ),
        thinking_style=style,
    )


def build_feedback(cii: int | None = 112) -> CoachingFeedback:
    return CoachingFeedback(
        thinking_insight="You weigh trade-offs before committing.",
        life_application="Use the same pause before personal decisions.",
        business_application="Frame options as reversible or not.",
        coach_recommendation="Practise stating your assumptions first.",
        level_progress_summary="Solid structured reasoning.",
        updated_profile=build_profile(cii=cii) if cii is not None else None,
    )


@dataclass
class StubCollaborators:
    """Async stand-ins for the content and evaluation agents."""

    n_questions: int = 2
    cii: int | None = 112
    fail_content: bool = False
    fail_evaluation: bool = False
    content_calls: list[tuple[int, CognitiveProfile]] = field(default_factory=list)
    evaluation_calls: list[tuple[int, list[Any], CognitiveProfile]] = field(default_factory=list)

    async def generate_content(self, level_number: int, profile: CognitiveProfile) -> Level:
        self.content_calls.append((level_number, profile))
        if self.fail_content:
            raise ContentGenerationError("Could not generate level.")
        return build_level(level_number, self.n_questions)

    async def evaluate_responses(self, level_number, responses, profile) -> CoachingFeedback:
        self.evaluation_calls.append((level_number, list(responses), profile))
        if self.fail_evaluation:
            raise EvaluationError("Could not evaluate level.")
        return build_feedback(self.cii)


@pytest.fixture
def store(tmp_path) -> PersistenceStore:
    return PersistenceStore(key="iq360_test_state", directory=tmp_path)


@pytest.fixture
def stub() -> StubCollaborators:
    return StubCollaborators()


@pytest.fixture
def make_machine(store, stub):
    """Factory so a test can build a second machine over the same store."""

    def _make(store_override: PersistenceStore | None = None, **overrides) -> SessionStateMachine:
        kwargs = {
            "generate_content": stub.generate_content,
            "evaluate_responses": stub.evaluate_responses,
            "clock": lambda: FIXED_NOW_MS,
        }
        kwargs.update(overrides)
        return SessionStateMachine(store_override or store, **kwargs)

    return _make


@pytest.fixture
def machine(make_machine) -> SessionStateMachine:
    return make_machine()


@pytest.fixture
def level_factory():
    return build_level


@pytest.fixture
def profile_factory():
    return build_profile


@pytest.fixture
def feedback_factory():
    return build_feedback
