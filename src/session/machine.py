"""Session state machine — drives the level lifecycle.

Flow:
    WELCOME → start_level → LEVEL_ACTIVE → submit_answers → COACHING
            ↖──────────────── proceed_to_next ───────────────┘

DASHBOARD and HISTORY are navigational views over the same session;
they can be opened from any state and ``go_back`` returns to where the
first one was opened from.  ``reset`` returns to a brand-new session.

The two collaborator calls (level content, response evaluation) are the
only suspension points.  While one is in flight no other may start; a
failed call leaves the machine exactly as it was before the call.  The
next level number is always derived from history, never tracked on its
own.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable, Sequence

from src.agents import content as content_agent
from src.agents import evaluator as evaluator_agent
from src.errors import (
    ContentGenerationError,
    EvaluationError,
    InvalidTransitionError,
    OperationInProgressError,
    PersistenceUnavailableError,
    ValidationError,
)
from src.models.initial_state import new_snapshot
from src.models.profile import CognitiveProfile, apply_update
from src.models.state import (
    NAVIGATIONAL_STATES,
    CoachingFeedback,
    GameState,
    HistoryEntry,
    Level,
    Snapshot,
    UserResponse,
)
from src.session import history as history_log
from src.session.store import PersistenceStore

logger = logging.getLogger(__name__)

ContentCollaborator = Callable[[int, CognitiveProfile], Awaitable[Level]]
EvaluationCollaborator = Callable[
    [int, Sequence[UserResponse], CognitiveProfile], Awaitable[CoachingFeedback]
]


def _now_ms() -> int:
    return int(time.time() * 1000)


class SessionStateMachine:
    """One user's session: profile, history, active level and current view.

    The persisted snapshot is loaded in the constructor, before any save
    can happen, so default state never overwrites saved progress.
    """

    def __init__(
        self,
        store: PersistenceStore | None = None,
        *,
        generate_content: ContentCollaborator | None = None,
        evaluate_responses: EvaluationCollaborator | None = None,
        clock: Callable[[], int] = _now_ms,
    ):
        self.store = store if store is not None else PersistenceStore()
        self._generate_content = generate_content or content_agent.generate_content
        self._evaluate_responses = evaluate_responses or evaluator_agent.evaluate_responses
        self._clock = clock

        self.state = GameState.WELCOME
        self.current_level: Level | None = None
        self.responses: list[UserResponse] = []
        self.coaching: CoachingFeedback | None = None
        self.loading = False
        self.error: str | None = None
        self.persistent = True

        self._return_to: GameState | None = None
        # Bumped by reset() so results of calls started earlier are dropped.
        self._epoch = 0
        self._loaded = False

        snapshot = self._load()
        self.profile: CognitiveProfile = snapshot.profile
        self.history: list[HistoryEntry] = list(snapshot.history)
        self._loaded = True

    # ── Derived state ─────────────────────────────────────────────────────

    @property
    def level_number(self) -> int:
        """The level to play next."""
        return history_log.latest_level_number(self.history)

    @property
    def base_state(self) -> GameState:
        """The non-navigational state underneath any open view."""
        if self.state in NAVIGATIONAL_STATES:
            return self._return_to or GameState.WELCOME
        return self.state

    def snapshot(self) -> Snapshot:
        return Snapshot(
            profile=self.profile,
            level_number=self.level_number,
            history=list(self.history),
        )

    # ── Level lifecycle ───────────────────────────────────────────────────

    async def start_level(self) -> Level:
        """Fetch the next level and make it active.

        Raises
        ------
        OperationInProgressError
            Another collaborator call is still pending.
        InvalidTransitionError
            The session is not at the welcome screen.
        ContentGenerationError
            The collaborator failed; nothing changed, the call may be retried.
        """
        self._ensure_idle()
        if self.base_state is not GameState.WELCOME:
            raise InvalidTransitionError(
                f"Cannot start a level from {self.base_state.value}."
            )

        level_number = self.level_number
        origin = self.state
        epoch = self._epoch
        logger.info("Requesting level %d", level_number)

        self.loading = True
        self.error = None
        try:
            level = await self._generate_content(level_number, self.profile)
        except ContentGenerationError as e:
            if epoch == self._epoch:
                self.error = e.message
            raise
        finally:
            self.loading = False

        if epoch != self._epoch:
            logger.info("Discarding level %d fetched before a reset", level_number)
            return level

        self.current_level = level
        self.responses = []
        self.coaching = None
        self._enter(GameState.LEVEL_ACTIVE, origin)
        return level

    def record_response(self, question_id: str, answer: str) -> None:
        """Set the answer for ``question_id``, replacing any earlier one in place."""
        response = UserResponse(question_id=question_id, answer=answer)
        for index, existing in enumerate(self.responses):
            if existing.question_id == question_id:
                self.responses[index] = response
                return
        self.responses.append(response)

    async def submit_answers(self) -> CoachingFeedback:
        """Send a complete response set for evaluation and record the result.

        Raises
        ------
        OperationInProgressError
            Another collaborator call is still pending.
        InvalidTransitionError
            No level is active.
        ValidationError
            Some questions are unanswered; the collaborator is not called.
        EvaluationError
            The collaborator failed; nothing changed, the call may be retried.
        """
        self._ensure_idle()
        level = self.current_level
        if self.base_state is not GameState.LEVEL_ACTIVE or level is None:
            raise InvalidTransitionError("There is no active level to submit.")

        try:
            responses = self._complete_responses(level)
        except ValidationError as e:
            self.error = e.message
            raise

        level_number = self.level_number
        origin = self.state
        epoch = self._epoch
        logger.info("Submitting %d responses for level %d", len(responses), level_number)

        self.loading = True
        self.error = None
        try:
            feedback = await self._evaluate_responses(level_number, responses, self.profile)
        except EvaluationError as e:
            if epoch == self._epoch:
                self.error = e.message
            raise
        finally:
            self.loading = False

        if epoch != self._epoch:
            logger.info("Discarding evaluation of level %d made before a reset", level_number)
            return feedback

        self.profile = apply_update(self.profile, feedback.updated_profile)
        entry = HistoryEntry(
            level_number=level_number,
            timestamp=self._clock(),
            cii=self.profile.cii,
            feedback=feedback,
            title=level.title,
        )
        self.history = history_log.append(self.history, entry)
        self.coaching = feedback
        self.responses = []
        self._save()
        logger.info("Level %d complete, CII now %d", level_number, self.profile.cii)

        self._enter(GameState.COACHING, origin)
        return feedback

    def proceed_to_next(self) -> None:
        """Leave the coaching screen for the welcome screen of the next level."""
        if self.base_state is not GameState.COACHING:
            raise InvalidTransitionError(
                f"Cannot proceed from {self.base_state.value}; finish a level first."
            )
        self.coaching = None
        self.current_level = None
        self.error = None
        self._return_to = None
        self.state = GameState.WELCOME

    def reset(self, confirm: bool = False) -> None:
        """Erase all progress and history.  Requires explicit confirmation."""
        if not confirm:
            raise ValidationError(
                "Reset erases all progress and history and must be confirmed."
            )

        self._epoch += 1
        fresh = new_snapshot()
        erased = self._erase_stored(fresh)

        self.profile = fresh.profile
        self.history = list(fresh.history)
        self.current_level = None
        self.responses = []
        self.coaching = None
        self.error = None
        self._return_to = None
        self.state = GameState.WELCOME
        if not erased:
            self.error = (
                "Progress was reset for this session only; "
                "the saved copy could not be erased."
            )
        logger.info("Session reset")

    # ── Navigation ────────────────────────────────────────────────────────

    def open_dashboard(self) -> None:
        self._navigate(GameState.DASHBOARD)

    def open_history(self) -> None:
        self._navigate(GameState.HISTORY)

    def go_back(self) -> None:
        """Close the navigational view and return to the underlying state."""
        if self.state not in NAVIGATIONAL_STATES:
            raise InvalidTransitionError(f"No view to go back from in {self.state.value}.")
        self.state = self.base_state
        self._return_to = None

    def _navigate(self, view: GameState) -> None:
        if self.state not in NAVIGATIONAL_STATES:
            self._return_to = self.state
        self.state = view

    def _enter(self, target: GameState, origin: GameState) -> None:
        # If the user navigated away while the call was pending, leave the
        # view alone and move the state underneath it.
        if self.state in NAVIGATIONAL_STATES and self.state is not origin:
            self._return_to = target
            return
        self.state = target
        self._return_to = None

    # ── Helpers ───────────────────────────────────────────────────────────

    def _ensure_idle(self) -> None:
        if self.loading:
            raise OperationInProgressError("Please wait for the current request to finish.")

    def _complete_responses(self, level: Level) -> list[UserResponse]:
        answers = {r.question_id: r.answer for r in self.responses}
        missing = [qid for qid in level.question_ids if qid not in answers]
        if missing:
            raise ValidationError(
                f"Please answer all {len(level.questions)} questions before submitting "
                f"({len(missing)} missing).",
                missing=missing,
            )
        return [
            UserResponse(question_id=qid, answer=answers[qid])
            for qid in level.question_ids
        ]

    def _load(self) -> Snapshot:
        try:
            snapshot = self.store.load()
        except PersistenceUnavailableError as e:
            self._degrade(e)
            snapshot = None
        if snapshot is None:
            return new_snapshot()
        logger.info(
            "Resumed session at level %d with %d completed level(s)",
            snapshot.level_number,
            len(snapshot.history),
        )
        return snapshot

    def _save(self) -> None:
        if not self._loaded or not self.persistent:
            return
        try:
            self.store.save(self.snapshot())
        except PersistenceUnavailableError as e:
            self._degrade(e)

    def _erase_stored(self, fresh: Snapshot) -> bool:
        # A blob that cannot be removed is overwritten with the fresh snapshot.
        try:
            self.store.clear()
            return True
        except PersistenceUnavailableError as e:
            logger.warning("Could not remove saved snapshot, overwriting it instead: %s", e)
        try:
            self.store.save(fresh)
            return True
        except PersistenceUnavailableError as e:
            self._degrade(e)
            return False

    def _degrade(self, error: PersistenceUnavailableError) -> None:
        if self.persistent:
            logger.warning("Persistence unavailable, continuing in memory only: %s", error)
        self.persistent = False
