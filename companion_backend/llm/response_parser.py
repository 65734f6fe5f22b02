"""
Response parser for generation output
Turns whatever the model returned into an LLMAnalysis through an ordered
chain of strategies; the last one never fails
"""

import json
import re
from enum import Enum
from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import ValidationError

from companion_backend.core.logger import get_logger
from companion_backend.models.analysis import (
    DEFAULT_PRIMARY_ACTIVITY,
    DEFAULT_PROFESSIONAL_SUMMARY,
    DEFAULT_REASONING,
    LLMAnalysis,
)

logger = get_logger(__name__)

E = TypeVar("E", bound=Enum)

DECORATIVE_PREFIXES = (
    "📊 Activity detected: [",
    "📊 Activity detected:",
    "Activity detected:",
)

TEXT_FIELDS = (
    "current_state",
    "focus_trend",
    "distraction_trend",
    "confidence",
    "primary_activity",
    "professional_summary",
    "reasoning",
)
SCORE_FIELDS = ("work_score", "distraction_score", "neutral_score")

PARSE_DEFAULTS: Dict[str, Any] = {
    "current_state": "working",
    "focus_trend": "variable",
    "distraction_trend": "moderate",
    "confidence": "medium",
    "primary_activity": DEFAULT_PRIMARY_ACTIVITY,
    "professional_summary": DEFAULT_PROFESSIONAL_SUMMARY,
    "reasoning": DEFAULT_REASONING,
    "work_score": 50,
    "distraction_score": 30,
    "neutral_score": 20,
}

_FENCE_PATTERN = re.compile(r"```(?:json)?\s*(.*?)(?:```|$)", re.DOTALL)


def coerce_enum(enum_cls: Type[E], value: Optional[str], default: E) -> E:
    """Enum member for a loosely formatted label, or default"""
    if not value:
        return default
    key = value.strip().lower().replace(" ", "_").replace("-", "_")
    try:
        return enum_cls(key)
    except ValueError:
        return default


def clean_response(text: str) -> str:
    """Strip markdown fences, decorative prefixes and bracket wrapping"""
    cleaned = (text or "").strip()

    if "```" in cleaned:
        match = _FENCE_PATTERN.search(cleaned)
        if match and match.group(1).strip():
            cleaned = match.group(1).strip()

    for prefix in DECORATIVE_PREFIXES:
        if cleaned.startswith(prefix):
            cleaned = cleaned[len(prefix) :].strip()
            break

    if cleaned.startswith("["):
        cleaned = cleaned[1:].strip()
    if cleaned.endswith("]"):
        cleaned = cleaned[:-1].strip()

    return cleaned


def _validate(data: Any, method: str) -> Optional[LLMAnalysis]:
    if isinstance(data, list) and data and isinstance(data[0], dict):
        data = data[0]
    if not isinstance(data, dict):
        return None
    try:
        return LLMAnalysis.model_validate({**data, "parse_method": method})
    except ValidationError as e:
        logger.debug(f"Parsed JSON ({method}) failed validation: {e.error_count()} errors")
        return None


class DirectJsonStrategy:
    name = "direct"

    def parse(self, text: str) -> Optional[LLMAnalysis]:
        try:
            return _validate(json.loads(text), self.name)
        except json.JSONDecodeError:
            return None


class BraceSliceStrategy:
    """Parses the span from the first '{' to the last '}'"""

    name = "brace_slice"

    def parse(self, text: str) -> Optional[LLMAnalysis]:
        start = text.find("{")
        end = text.rfind("}")
        if start == -1 or end <= start:
            return None
        try:
            return _validate(json.loads(text[start : end + 1]), self.name)
        except json.JSONDecodeError:
            return None


class FieldExtractionStrategy:
    """Pulls individual fields out with regexes, defaulting the rest"""

    name = "fields"

    def parse(self, text: str) -> Optional[LLMAnalysis]:
        values: Dict[str, Any] = {}

        for field in TEXT_FIELDS:
            value = self._extract_text(text, field)
            if value:
                values[field] = value

        for field in SCORE_FIELDS:
            match = re.search(rf'["\']?{field}["\']?\s*:\s*["\']?(\d{{1,3}}(?:\.\d+)?)', text)
            if match:
                values[field] = match.group(1)

        method = self.name if values else "defaults"
        if not values:
            logger.debug("No fields recovered from response, using defaults")

        return LLMAnalysis.model_validate({**PARSE_DEFAULTS, **values, "parse_method": method})

    @staticmethod
    def _extract_text(text: str, field: str) -> Optional[str]:
        patterns = (
            rf'"{field}"\s*:\s*"((?:[^"\\]|\\.)*)"',
            rf'\b{field}\s*:\s*"([^"]+)"',
            rf"'{field}'\s*:\s*'([^']+)'",
        )
        for pattern in patterns:
            match = re.search(pattern, text)
            if match:
                value = match.group(1).replace('\\"', '"').strip()
                if value:
                    return value
        return None


class ResponseParser:
    """
    Parses generation output; never raises

    Strategies run in order on the cleaned text: direct JSON, brace slice,
    then field extraction with defaults.
    """

    def __init__(self):
        self.strategies: List[Any] = [
            DirectJsonStrategy(),
            BraceSliceStrategy(),
            FieldExtractionStrategy(),
        ]

    def parse(self, text: Optional[str]) -> LLMAnalysis:
        cleaned = clean_response(text or "")

        for strategy in self.strategies:
            try:
                result = strategy.parse(cleaned)
            except Exception as e:
                logger.warning(f"Parse strategy {strategy.name} raised: {e}")
                continue
            if result is not None:
                logger.debug(f"Response parsed with strategy: {result.parse_method}")
                return result

        return LLMAnalysis.model_validate({**PARSE_DEFAULTS, "parse_method": "defaults"})
