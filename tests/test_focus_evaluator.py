"""
Tests for merging model output with local metrics
"""

import json
from datetime import timedelta

import pytest
from conftest import NOW, FakeLLMManager, make_context, make_event

from companion_backend.core.exceptions import LLMUnavailableError
from companion_backend.llm.focus_evaluator import FocusEvaluator, compose_summary
from companion_backend.models.activity import CurrentState
from companion_backend.models.analysis import Confidence


def ago(minutes):
    return NOW - timedelta(minutes=minutes)


@pytest.fixture
def context():
    # 20 minutes in the editor, 4 minutes of music
    events = [
        make_event(ago(25), 20 * 60, app="Code.exe", title="coordinator.py"),
        make_event(ago(5), 4 * 60, app="spotify", title="Focus playlist"),
    ]
    return make_context(events)


def llm_json(**overrides):
    data = {
        "current_state": "flow",
        "focus_trend": "improving",
        "distraction_trend": "low",
        "confidence": "high",
        "primary_activity": "Refactoring the coordinator",
        "professional_summary": "Strong coding stretch with a short music break.",
        "work_score": 70,
        "distraction_score": 20,
        "neutral_score": 20,
        "reasoning": "Editor dominates the timeline",
    }
    data.update(overrides)
    return json.dumps(data)


def test_local_metrics(context):
    metrics = context.metrics
    assert metrics.current_state == CurrentState.PRODUCTIVE
    assert (metrics.work_percentage, metrics.distraction_percentage, metrics.neutral_percentage) == (
        83,
        17,
        0,
    )
    assert context.focus_score == 83


@pytest.mark.asyncio
async def test_high_confidence_uses_model_assessment(context):
    llm = FakeLLMManager([llm_json(current_state="needs_nudge")])

    result = await FocusEvaluator(llm_manager=llm).evaluate(context)

    assert result.source == "llm"
    assert result.confidence == Confidence.HIGH
    assert result.state == CurrentState.UNPRODUCTIVE
    # 70/20/20 renormalized to 100
    assert (result.work_score, result.distraction_score, result.neutral_score) == (64, 18, 18)
    assert result.summary_text == "Strong coding stretch with a short music break."
    assert result.focus_score == 83
    assert "USER CONTEXT:" in llm.prompts[0]


@pytest.mark.asyncio
async def test_legacy_state_labels_are_mapped(context):
    llm = FakeLLMManager([llm_json(current_state="flow")])
    result = await FocusEvaluator(llm_manager=llm).evaluate(context)
    assert result.state == CurrentState.PRODUCTIVE


@pytest.mark.asyncio
async def test_medium_confidence_keeps_measured_values(context):
    llm = FakeLLMManager([llm_json(confidence="medium", current_state="afk")])

    result = await FocusEvaluator(llm_manager=llm).evaluate(context)

    assert result.source == "llm"
    assert result.state == CurrentState.PRODUCTIVE
    assert (result.work_score, result.distraction_score, result.neutral_score) == (83, 17, 0)


@pytest.mark.asyncio
async def test_unparseable_output_falls_back_to_composed_summary(context):
    llm = FakeLLMManager(["The user is doing great!"])

    result = await FocusEvaluator(llm_manager=llm).evaluate(context)

    assert result.source == "llm"
    assert result.confidence == Confidence.MEDIUM
    assert result.state == CurrentState.PRODUCTIVE
    assert result.summary_text == compose_summary(context)
    assert result.primary_activity == "Working in Code.exe"


@pytest.mark.asyncio
async def test_unavailable_backend_uses_local_result(context):
    llm = FakeLLMManager([LLMUnavailableError("connection refused")])

    result = await FocusEvaluator(llm_manager=llm).evaluate(context)

    assert result.source == "local"
    assert result.confidence == Confidence.LOW
    assert result.state == CurrentState.PRODUCTIVE
    assert result.work_score + result.distraction_score + result.neutral_score == 100
    assert result.summary_text.startswith("You've spent most time in Code.exe with a 83% productivity rate.")


def test_compose_summary_without_activity():
    summary = compose_summary(make_context([]))
    assert summary.startswith("No recent activity detected")
