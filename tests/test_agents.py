"""Tests for the LLM-backed content and evaluation agents.

All OpenAI calls are mocked, so no API key is required.
"""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from langchain_core.messages import AIMessage

from src.agents.content import build_level_prompt, generate_content
from src.agents.evaluator import build_evaluation_prompt, evaluate_responses
from src.errors import ContentGenerationError, EvaluationError
from src.llm import parse_json, response_text
from src.models.profile import default_profile
from src.models.state import UserResponse

# ── Helpers ───────────────────────────────────────────────────────────────

VALID_LEVEL_JSON = json.dumps({
    "id": 4,
    "title": "The Supplier Dilemma",
    "scenarioIntroduction": "Your only supplier doubles its price overnight.",
    "questions": [
        {"id": "q1", "text": "What do you check first?", "type": "logic"},
        {"id": "q2", "text": "Who do you call?", "type": "scenario"},
        {"id": "q3", "text": "What would you never do?", "type": "psychological"},
    ],
})

VALID_FEEDBACK_JSON = json.dumps({
    "thinkingInsight": "You separate facts from assumptions quickly.",
    "lifeApplication": "Apply the same triage to household budgets.",
    "businessApplication": "Diversify before you are forced to.",
    "coachRecommendation": "Write down the decision you are avoiding.",
    "levelProgressSummary": "Strong start to tier two.",
    "updatedProfile": {
        "cii": 108,
        "thinkingStyle": "Pragmatic Strategist",
        "scores": {
            "logicalReasoning": 62,
            "executiveFunction": 58,
            "innovationIndex": 55,
            "emotionalRegulation": 51,
            "strategicThinking": 64,
            "decisionConsistency": 57,
        },
    },
})

RESPONSES = [
    UserResponse(question_id="q1", answer="The contract terms."),
    UserResponse(question_id="q2", answer="A second supplier."),
]


def _mock_llm_response(content) -> MagicMock:
    mock_llm = MagicMock()
    mock_llm.ainvoke = AsyncMock(return_value=AIMessage(content=content))
    return mock_llm


def _failing_llm(error: Exception) -> MagicMock:
    mock_llm = MagicMock()
    mock_llm.ainvoke = AsyncMock(side_effect=error)
    return mock_llm


# ── Parsing helpers ───────────────────────────────────────────────────────


class TestParseJson:
    def test_plain_json(self):
        assert parse_json('{"a": 1}') == {"a": 1}

    def test_strips_markdown_fences(self):
        raw = '```json\n{"a": 1}\n```'
        assert parse_json(raw) == {"a": 1}

    def test_raises_on_invalid_json(self):
        with pytest.raises(json.JSONDecodeError):
            parse_json("not json at all")

    def test_rejects_non_object(self):
        with pytest.raises(ValueError, match="JSON object"):
            parse_json("[1, 2]")


class TestResponseText:
    def test_string_passthrough(self):
        assert response_text("hello") == "hello"

    def test_content_blocks_joined(self):
        blocks = [{"type": "text", "text": '{"a"'}, {"type": "text", "text": ": 1}"}]
        assert response_text(blocks) == '{"a": 1}'


# ── Content agent ─────────────────────────────────────────────────────────


class TestGenerateContent:
    @pytest.mark.asyncio
    async def test_happy_path(self):
        mock_llm = _mock_llm_response(VALID_LEVEL_JSON)
        with patch("src.agents.content.get_chat_llm", return_value=mock_llm):
            level = await generate_content(4, default_profile())

        assert level.title == "The Supplier Dilemma"
        assert level.question_ids == ["q1", "q2", "q3"]
        assert level.questions[2].type == "psychological"

        messages = mock_llm.ainvoke.await_args.args[0]
        assert "IQ360" in messages[0].content
        assert "Level 4" in messages[1].content

    @pytest.mark.asyncio
    async def test_fenced_output(self):
        mock_llm = _mock_llm_response(f"```json\n{VALID_LEVEL_JSON}\n```")
        with patch("src.agents.content.get_chat_llm", return_value=mock_llm):
            level = await generate_content(4, default_profile())
        assert len(level.questions) == 3

    @pytest.mark.asyncio
    async def test_parse_error_raises(self):
        mock_llm = _mock_llm_response("Here is your level!")
        with patch("src.agents.content.get_chat_llm", return_value=mock_llm):
            with pytest.raises(ContentGenerationError):
                await generate_content(1, default_profile())

    @pytest.mark.asyncio
    async def test_missing_fields_raise(self):
        mock_llm = _mock_llm_response(json.dumps({"id": 1, "title": "No questions"}))
        with patch("src.agents.content.get_chat_llm", return_value=mock_llm):
            with pytest.raises(ContentGenerationError):
                await generate_content(1, default_profile())

    @pytest.mark.asyncio
    async def test_duplicate_question_ids_raise(self):
        level = json.loads(VALID_LEVEL_JSON)
        level["questions"][1]["id"] = "q1"
        mock_llm = _mock_llm_response(json.dumps(level))
        with patch("src.agents.content.get_chat_llm", return_value=mock_llm):
            with pytest.raises(ContentGenerationError):
                await generate_content(4, default_profile())

    @pytest.mark.asyncio
    async def test_api_failure_raises_with_cause(self):
        mock_llm = _failing_llm(RuntimeError("API down"))
        with patch("src.agents.content.get_chat_llm", return_value=mock_llm):
            with pytest.raises(ContentGenerationError) as exc:
                await generate_content(1, default_profile())
        assert isinstance(exc.value.__cause__, RuntimeError)

    def test_prompt_names_tier_and_profile(self):
        prompt = build_level_prompt(7, default_profile())
        assert "Level 7" in prompt
        assert "Tier 3: Executive Function & Planning" in prompt
        assert '"thinkingStyle": "Developing Strategist"' in prompt


# ── Evaluation agent ──────────────────────────────────────────────────────


class TestEvaluateResponses:
    @pytest.mark.asyncio
    async def test_happy_path(self):
        mock_llm = _mock_llm_response(VALID_FEEDBACK_JSON)
        with patch("src.agents.evaluator.get_chat_llm", return_value=mock_llm):
            feedback = await evaluate_responses(4, RESPONSES, default_profile())

        assert feedback.level_progress_summary == "Strong start to tier two."
        assert feedback.updated_profile.cii == 108
        assert feedback.updated_profile.scores.strategic_thinking == 64
        assert feedback.updated_profile.thinking_style == "Pragmatic Strategist"

    @pytest.mark.asyncio
    async def test_out_of_range_scores_pass_through(self):
        data = json.loads(VALID_FEEDBACK_JSON)
        data["updatedProfile"]["cii"] = 160
        data["updatedProfile"]["scores"]["innovationIndex"] = 112
        mock_llm = _mock_llm_response(json.dumps(data))
        with patch("src.agents.evaluator.get_chat_llm", return_value=mock_llm):
            feedback = await evaluate_responses(4, RESPONSES, default_profile())

        assert feedback.updated_profile.cii == 160
        assert feedback.updated_profile.scores.innovation_index == 112

    @pytest.mark.asyncio
    async def test_missing_updated_profile_is_allowed(self):
        data = json.loads(VALID_FEEDBACK_JSON)
        del data["updatedProfile"]
        mock_llm = _mock_llm_response(json.dumps(data))
        with patch("src.agents.evaluator.get_chat_llm", return_value=mock_llm):
            feedback = await evaluate_responses(4, RESPONSES, default_profile())
        assert feedback.updated_profile is None

    @pytest.mark.asyncio
    async def test_incomplete_profile_is_rejected(self):
        data = json.loads(VALID_FEEDBACK_JSON)
        del data["updatedProfile"]["scores"]["emotionalRegulation"]
        mock_llm = _mock_llm_response(json.dumps(data))
        with patch("src.agents.evaluator.get_chat_llm", return_value=mock_llm):
            with pytest.raises(EvaluationError):
                await evaluate_responses(4, RESPONSES, default_profile())

    @pytest.mark.asyncio
    async def test_api_failure_raises(self):
        mock_llm = _failing_llm(TimeoutError("slow"))
        with patch("src.agents.evaluator.get_chat_llm", return_value=mock_llm):
            with pytest.raises(EvaluationError):
                await evaluate_responses(4, RESPONSES, default_profile())

    def test_prompt_carries_responses(self):
        prompt = build_evaluation_prompt(2, RESPONSES, default_profile())
        assert "Level 2" in prompt
        assert '"questionId": "q1"' in prompt
        assert "A second supplier." in prompt


# ── Client factory ────────────────────────────────────────────────────────


class TestGetChatLlm:
    def test_reads_model_settings(self, monkeypatch):
        import src.settings as settings
        from src.llm import get_chat_llm

        monkeypatch.setenv("OPENAI_CHAT_MODEL", "gpt-test-model")
        settings.reset()
        try:
            with patch("src.llm.ChatOpenAI") as mock_cls:
                get_chat_llm(temperature=0.0)
            kwargs = mock_cls.call_args.kwargs
            assert kwargs["model"] == "gpt-test-model"
            assert kwargs["temperature"] == 0.0
            assert kwargs["request_timeout"] == 30
        finally:
            monkeypatch.delenv("OPENAI_CHAT_MODEL")
            settings.reset()
