"""
JSON extraction helpers for LLM output
Models often wrap JSON in markdown fences or surround it with prose
"""

import json
import re
from typing import Any, Optional

from .logger import get_logger

logger = get_logger(__name__)

_FENCE_PATTERN = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)


def parse_json_from_response(content: str) -> Optional[Any]:
    """
    Extract the first JSON document from an LLM response

    Tries, in order: fenced ```json blocks, the raw text, and the slice
    between the first opening and last closing brace or bracket.

    Args:
        content: Raw response text

    Returns:
        Parsed JSON value, or None when nothing parses
    """
    if not content:
        return None

    candidates = [match.strip() for match in _FENCE_PATTERN.findall(content)]
    candidates.append(content.strip())

    for opener, closer in (("{", "}"), ("[", "]")):
        start = content.find(opener)
        end = content.rfind(closer)
        if start != -1 and end > start:
            candidates.append(content[start : end + 1])

    for candidate in candidates:
        if not candidate:
            continue
        try:
            return json.loads(candidate)
        except json.JSONDecodeError:
            continue

    logger.debug(f"No JSON document found in response: {content[:200]!r}")
    return None
