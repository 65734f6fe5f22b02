"""
Tests for the staged response parser
"""

import json

import pytest

from companion_backend.llm.response_parser import ResponseParser, clean_response, coerce_enum
from companion_backend.models.analysis import Confidence, DEFAULT_PROFESSIONAL_SUMMARY

FULL_RESPONSE = {
    "current_state": "productive",
    "focus_trend": "maintained",
    "distraction_trend": "low",
    "confidence": "high",
    "primary_activity": "Writing the scheduler",
    "professional_summary": "Steady coding session in the editor.",
    "work_score": 80,
    "distraction_score": 5,
    "neutral_score": 15,
    "reasoning": "Mostly editor time with few switches",
}


@pytest.fixture
def parser():
    return ResponseParser()


def test_plain_json(parser):
    result = parser.parse(json.dumps(FULL_RESPONSE))

    assert result.parse_method == "direct"
    assert result.current_state == "productive"
    assert result.work_score == 80
    assert result.professional_summary == "Steady coding session in the editor."


def test_fenced_json(parser):
    text = "Sure! Here you go:\n```json\n" + json.dumps(FULL_RESPONSE, indent=2) + "\n```\n"

    result = parser.parse(text)

    assert result.parse_method == "direct"
    assert result.confidence == "high"


def test_decorative_prefix_and_brackets(parser):
    text = "📊 Activity detected: [" + json.dumps(FULL_RESPONSE) + "]"

    result = parser.parse(text)

    assert result.parse_method == "direct"
    assert result.primary_activity == "Writing the scheduler"


def test_json_surrounded_by_prose(parser):
    text = "My analysis: " + json.dumps(FULL_RESPONSE) + " Let me know if you need more."

    result = parser.parse(text)

    assert result.parse_method == "brace_slice"
    assert result.distraction_trend == "low"


def test_truncated_json_recovers_fields(parser):
    text = (
        '{"current_state": "flow", "confidence": "high", "work_score": 85, '
        '"distraction_score": "10%", "professional_summary": "Deep work on'
    )

    result = parser.parse(text)

    assert result.parse_method == "fields"
    assert result.current_state == "flow"
    assert result.confidence == "high"
    assert result.work_score == 85
    assert result.distraction_score == 10
    assert result.neutral_score == 20
    assert result.professional_summary == DEFAULT_PROFESSIONAL_SUMMARY


def test_unparseable_text_yields_defaults(parser):
    result = parser.parse("I could not analyze this activity, sorry.")

    assert result.parse_method == "defaults"
    assert result.current_state == "working"
    assert result.confidence == "medium"
    assert (result.work_score, result.distraction_score, result.neutral_score) == (50, 30, 20)


def test_scores_are_coerced_and_clamped(parser):
    data = dict(FULL_RESPONSE, work_score="85%", distraction_score=150, neutral_score="n/a")

    result = parser.parse(json.dumps(data))

    assert result.work_score == 85
    assert result.distraction_score == 100
    assert result.neutral_score == 20


@pytest.mark.parametrize(
    "text",
    ["", None, "}{", "[", "```", "null", "[1, 2]", '{"current_state":', "\x00\xff", "{" * 50],
)
def test_never_raises(parser, text):
    result = parser.parse(text)
    assert result.current_state
    assert 0 <= result.work_score <= 100


def test_clean_response():
    assert clean_response("```json\n{\"a\": 1}\n```") == '{"a": 1}'
    assert clean_response("Activity detected: {}") == "{}"
    assert clean_response("  [ {} ]  ") == "{}"


def test_coerce_enum():
    assert coerce_enum(Confidence, " High ", Confidence.MEDIUM) == Confidence.HIGH
    assert coerce_enum(Confidence, "certain", Confidence.MEDIUM) == Confidence.MEDIUM
    assert coerce_enum(Confidence, None, Confidence.LOW) == Confidence.LOW
