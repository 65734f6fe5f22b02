"""
Tests for prompt construction
"""

from datetime import timedelta

from conftest import NOW, make_context, make_event

from companion_backend.llm.prompt_builder import CATEGORIZABLE, PromptBuilder


def ago(minutes):
    return NOW - timedelta(minutes=minutes)


def sample_events():
    return [
        make_event(ago(28), 300, app="Code.exe", title="scheduler.py - companion"),
        make_event(ago(23), 120, app="zettlr", title="notes.md"),
        make_event(ago(21), 600, app="Code.exe", title="coordinator.py - companion"),
        make_event(ago(11), 300, app="spotify", title="Focus playlist"),
    ]


def test_analysis_prompt_sections():
    prompt = PromptBuilder().build_analysis_prompt(make_context(sample_events()))

    for header in (
        "USER CONTEXT:\nI am a software developer.",
        "LOCAL METRICS:",
        "TIMEFRAME COMPARISON:",
        "TOP APPS TODAY:",
        "DETAILED ACTIVITY TIMELINE (last 20 entries):",
        "CONTEXT SWITCHES:",
        "BEHAVIOR PATTERNS:",
        "ANALYSIS REQUIREMENTS:",
    ):
        assert header in prompt
    assert '"current_state": "productive|moderate|chilling|unproductive|afk"' in prompt


def test_timeline_annotations():
    prompt = PromptBuilder().build_analysis_prompt(make_context(sample_events()))

    assert "Code.exe [development:ide, score:95] → scheduler.py - companion" in prompt
    assert "zettlr [uncategorized] → notes.md" in prompt
    assert "spotify [entertainment:music, score:30]" in prompt
    assert "• Code.exe: 15.0min" in prompt


def test_timeline_keeps_latest_entries():
    prompt = PromptBuilder(timeline_limit=2).build_analysis_prompt(make_context(sample_events()))

    assert "DETAILED ACTIVITY TIMELINE (last 2 entries):" in prompt
    assert "scheduler.py" not in prompt
    assert "coordinator.py - companion" in prompt


def test_omitted_switches_are_counted():
    prompt = PromptBuilder(switch_limit=1).build_analysis_prompt(make_context(sample_events()))

    assert "• (2 earlier switches omitted)" in prompt
    assert "• Code.exe → spotify at" in prompt


def test_empty_activity():
    prompt = PromptBuilder().build_analysis_prompt(make_context([]))

    assert "• No recent activity" in prompt
    assert "TOP APPS TODAY:\n• None" in prompt
    assert "State (heuristic): afk" in prompt


def test_categorization_prompt():
    prompt = PromptBuilder().build_categorization_prompt(["zettlr", "Krita"])

    assert "- zettlr\n- Krita" in prompt
    assert "development" in prompt
    assert "uncategorized" not in CATEGORIZABLE
    assert "uncategorized" not in prompt
