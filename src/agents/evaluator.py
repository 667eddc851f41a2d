"""Evaluator agent — turns a level's answers into coaching feedback.

The model receives the user's responses and current profile and returns
five coaching texts plus an ``updatedProfile``.  The updated profile is
the only way scores ever change; it is validated for shape here and
otherwise trusted verbatim (no clamping of CII or domain scores).
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence

from langchain_core.messages import HumanMessage, SystemMessage

from src.agents.prompts import SYSTEM_PROMPT
from src.errors import EvaluationError
from src.llm import get_chat_llm, parse_json, response_text
from src.models.profile import CognitiveProfile
from src.models.state import CoachingFeedback, UserResponse

logger = logging.getLogger(__name__)

EVALUATION_PROMPT = """\
Analyze the user's responses for Level {level_number}.
Responses: {responses_json}
Current Profile: {profile_json}

Provide coaching feedback and update the cognitive profile.

Return JSON with exactly this shape:
{{
  "thinkingInsight": "...",
  "lifeApplication": "...",
  "businessApplication": "...",
  "coachRecommendation": "...",
  "levelProgressSummary": "...",
  "updatedProfile": {{
    "cii": 104,
    "thinkingStyle": "...",
    "scores": {{
      "logicalReasoning": 55,
      "executiveFunction": 52,
      "innovationIndex": 58,
      "emotionalRegulation": 50,
      "strategicThinking": 54,
      "decisionConsistency": 51
    }}
  }}
}}
"""


def build_evaluation_prompt(
    level_number: int,
    responses: Sequence[UserResponse],
    profile: CognitiveProfile,
) -> str:
    return EVALUATION_PROMPT.format(
        level_number=level_number,
        responses_json=json.dumps([r.to_wire() for r in responses], ensure_ascii=False),
        profile_json=json.dumps(profile.to_wire()),
    )


async def evaluate_responses(
    level_number: int,
    responses: Sequence[UserResponse],
    profile: CognitiveProfile,
) -> CoachingFeedback:
    """Score one level's responses and return the coaching feedback.

    Raises
    ------
    EvaluationError
        On any failure to obtain well-formed feedback.
    """
    messages = [
        SystemMessage(content=SYSTEM_PROMPT),
        HumanMessage(content=build_evaluation_prompt(level_number, responses, profile)),
    ]

    try:
        llm = get_chat_llm(temperature=0.0)
        response = await llm.ainvoke(messages)
        feedback = CoachingFeedback.model_validate(
            parse_json(response_text(response.content))
        )
    except Exception as e:
        logger.warning("Evaluation of level %d failed: %s", level_number, e)
        raise EvaluationError(
            f"Could not evaluate level {level_number}. Please try again."
        ) from e

    if feedback.updated_profile is None:
        logger.info("Level %d feedback carried no profile update", level_number)
    return feedback
