"""
Context assessment
Judges how well the apps in use fit the role described in the user context
"""

from typing import List, NamedTuple, Tuple

from companion_backend.models.activity import Event
from companion_backend.models.analysis import ContextAssessment


class RoleProfile(NamedTuple):
    role: str
    triggers: Tuple[str, ...]
    expected_apps: Tuple[str, ...]
    distraction_apps: Tuple[str, ...]


ROLE_PROFILES: Tuple[RoleProfile, ...] = (
    RoleProfile(
        "Social Media Manager",
        ("social media manager",),
        ("twitter", "facebook", "instagram", "linkedin", "hootsuite", "buffer"),
        ("games", "netflix", "youtube"),
    ),
    RoleProfile(
        "Software Developer",
        ("developer", "programmer"),
        ("vscode", "code", "terminal", "chrome", "firefox", "slack", "github"),
        ("facebook", "instagram", "tiktok", "games"),
    ),
    RoleProfile(
        "Content Creator",
        ("writer", "content"),
        ("word", "docs", "notion", "obsidian", "chrome", "firefox"),
        ("games", "tiktok", "instagram"),
    ),
    RoleProfile(
        "Designer",
        ("designer",),
        ("figma", "sketch", "photoshop", "illustrator", "chrome"),
        ("games", "tiktok", "facebook"),
    ),
)

GENERAL_PROFILE = RoleProfile(
    "General Professional",
    (),
    ("chrome", "firefox", "word", "excel", "slack", "teams"),
    ("games", "tiktok", "instagram", "facebook", "youtube"),
)

NEUTRAL_WEIGHT = 0.5


def profile_for(user_context: str) -> RoleProfile:
    lowered = user_context.lower()
    for profile in ROLE_PROFILES:
        if any(trigger in lowered for trigger in profile.triggers):
            return profile
    return GENERAL_PROFILE


def describe_alignment(score: float) -> str:
    if score > 0.8:
        return "Excellent alignment with professional context"
    if score > 0.6:
        return "Good alignment with occasional off-task moments"
    if score > 0.4:
        return "Moderate alignment - consider refocusing on core tasks"
    return "Low alignment - significant time on non-contextual activities"


class ContextAssessor:
    def assess(self, events: List[Event], user_context: str) -> ContextAssessment:
        profile = profile_for(user_context)
        expected = neutral = distraction = 0.0

        for event in events:
            if not event.app:
                continue
            app = event.app.lower()
            if any(name in app for name in profile.expected_apps):
                expected += event.duration_seconds
            elif any(name in app for name in profile.distraction_apps):
                distraction += event.duration_seconds
            else:
                neutral += event.duration_seconds

        total = expected + neutral + distraction
        score = (expected + NEUTRAL_WEIGHT * neutral) / total if total > 0 else 0.5

        return ContextAssessment(
            role=profile.role,
            appropriateness_score=score,
            assessment=describe_alignment(score),
            expected_minutes=expected / 60.0,
            neutral_minutes=neutral / 60.0,
            distraction_minutes=distraction / 60.0,
        )
