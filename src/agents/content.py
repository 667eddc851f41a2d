"""Content agent — generates the scenario and questions for one level.

The agent sees the level number (and so its tier) plus the user's
current profile, and must answer with a single JSON level.  Any
transport, parse or shape failure surfaces as ``ContentGenerationError``.
"""

from __future__ import annotations

import json
import logging

from langchain_core.messages import HumanMessage, SystemMessage

from src.agents.prompts import SYSTEM_PROMPT
from src.errors import ContentGenerationError
from src.llm import get_chat_llm, parse_json, response_text
from src.models.profile import CognitiveProfile, tier_for_level, tier_name
from src.models.state import Level

logger = logging.getLogger(__name__)

LEVEL_PROMPT = """\
Generate Level {level_number} for IQ360.
It belongs to Tier {tier}: {tier_name}.
The user's current profile is: {profile_json}

Focus on high-impact scenarios. Write one scenario introduction and six
open-ended questions that build on it.

Return JSON with exactly this shape:
{{
  "id": {level_number},
  "title": "Short level title",
  "scenarioIntroduction": "The scenario the questions refer to.",
  "questions": [
    {{"id": "q1", "text": "...", "type": "logic"}},
    {{"id": "q2", "text": "...", "type": "scenario"}}
  ]
}}

Question ids must be unique. Question types: logic, scenario, executive,
innovation, psychological, life_business.
"""


def build_level_prompt(level_number: int, profile: CognitiveProfile) -> str:
    return LEVEL_PROMPT.format(
        level_number=level_number,
        tier=tier_for_level(level_number),
        tier_name=tier_name(level_number),
        profile_json=json.dumps(profile.to_wire()),
    )


async def generate_content(level_number: int, profile: CognitiveProfile) -> Level:
    """Ask the model for level ``level_number`` tailored to ``profile``.

    Raises
    ------
    ContentGenerationError
        On any failure to obtain a well-formed level.
    """
    messages = [
        SystemMessage(content=SYSTEM_PROMPT),
        HumanMessage(content=build_level_prompt(level_number, profile)),
    ]

    try:
        llm = get_chat_llm()
        response = await llm.ainvoke(messages)
        level = Level.model_validate(parse_json(response_text(response.content)))
    except Exception as e:
        logger.warning("Content generation for level %d failed: %s", level_number, e)
        raise ContentGenerationError(
            f"Could not generate level {level_number}. Please try again."
        ) from e

    logger.info(
        "Generated level %d %r with %d questions",
        level_number,
        level.title,
        len(level.questions),
    )
    return level
