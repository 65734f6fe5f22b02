"""
Rabbit hole detection
Measures how coherently browsing topics follow one another
"""

from typing import List, Optional

from companion_backend.core.logger import get_logger
from companion_backend.models.activity import Event
from companion_backend.models.analysis import (
    RabbitHoleAnalysis,
    RabbitHoleSeverity,
    TopicLabel,
)

from .default_categories import normalize_app_name

logger = get_logger(__name__)

BROWSER_MARKERS = ("browser", "chrome", "firefox", "brave", "safari", "opera", "vivaldi")

# Too generic for substring matching
EXACT_BROWSER_NAMES = {"edge", "msedge", "microsoft edge", "microsoftedge"}

# Checked in order; the first matching rule wins
TOPIC_RULES = (
    (TopicLabel.PROGRAMMING, ("python", "programming", "code", "async", "javascript", "stack overflow", "github")),
    (TopicLabel.REFERENCE, ("wikipedia", "encyclopedia")),
    (TopicLabel.SOCIAL_MEDIA, ("youtube", "reddit", "twitter", "facebook", "instagram", "tiktok")),
    (TopicLabel.NEWS, ("news",)),
    (TopicLabel.EMAIL, ("email", "gmail", "inbox")),
    (TopicLabel.DOCUMENTATION, ("docs", "document", "manual")),
)

RELATED_TOPICS = {frozenset({TopicLabel.PROGRAMMING, TopicLabel.DOCUMENTATION})}

RABBIT_HOLE_COHERENCE = 0.6
RABBIT_HOLE_MIN_EVENTS = 5
DRIFT_SIMILARITY = 0.5


def is_browser(app_name: str) -> bool:
    app = normalize_app_name(app_name)
    if app in EXACT_BROWSER_NAMES:
        return True
    return any(marker in app for marker in BROWSER_MARKERS)


def extract_topic(title: str) -> TopicLabel:
    lowered = title.lower()
    for topic, keywords in TOPIC_RULES:
        if any(keyword in lowered for keyword in keywords):
            return topic
    return TopicLabel.OTHER


def topic_similarity(first: TopicLabel, second: TopicLabel) -> float:
    if first == second:
        return 1.0
    if frozenset({first, second}) in RELATED_TOPICS:
        return 0.8
    return 0.2


def severity_for(coherence: float) -> RabbitHoleSeverity:
    if coherence > 0.8:
        return RabbitHoleSeverity.NONE
    if coherence > 0.6:
        return RabbitHoleSeverity.MILD
    if coherence > 0.4:
        return RabbitHoleSeverity.MODERATE
    return RabbitHoleSeverity.SEVERE


class RabbitHoleDetector:
    """Flags long, incoherent browsing chains"""

    def detect(self, events: List[Event]) -> RabbitHoleAnalysis:
        """
        Analyze browsing coherence

        Args:
            events: Active window events (any order)

        Returns:
            RabbitHoleAnalysis; empty browsing yields a coherent, non-rabbit-hole result
        """
        browsing = [
            event
            for event in sorted(events, key=lambda event: event.timestamp)
            if is_browser(event.app) and event.title
        ]
        topics = [extract_topic(event.title) for event in browsing]

        if len(topics) < 2:
            coherence = 1.0
        else:
            similarities = [
                topic_similarity(previous, current)
                for previous, current in zip(topics, topics[1:])
            ]
            coherence = sum(similarities) / len(similarities)

        drift_path: List[TopicLabel] = topics[:1]
        for previous, current in zip(topics, topics[1:]):
            if topic_similarity(previous, current) < DRIFT_SIMILARITY:
                drift_path.append(current)

        initial: Optional[TopicLabel] = topics[0] if topics else None
        current_topic: Optional[TopicLabel] = topics[-1] if topics else None
        is_rabbit_hole = coherence < RABBIT_HOLE_COHERENCE and len(browsing) > RABBIT_HOLE_MIN_EVENTS

        if is_rabbit_hole:
            logger.debug(
                f"Rabbit hole detected: coherence={coherence:.2f} over {len(browsing)} pages"
            )

        return RabbitHoleAnalysis(
            is_rabbit_hole=is_rabbit_hole,
            coherence_score=coherence,
            severity=severity_for(coherence),
            browsing_events=len(browsing),
            initial_topic=initial,
            current_topic=current_topic,
            drift_path=drift_path,
        )
