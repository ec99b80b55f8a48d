"""Rule-based category detection for captured text."""

import re

from wmem.memory.capture import PHONE_PATTERN
from wmem.memory.models import MemoryCategory

# Evaluated in order; first match wins.
CATEGORY_RULES: list[tuple[re.Pattern[str], MemoryCategory]] = [
    (re.compile(r"prefer|like|love|hate|want|favorite", re.IGNORECASE), "preference"),
    (re.compile(r"decided|agreed|will use|going with", re.IGNORECASE), "decision"),
    (
        re.compile(
            rf"{PHONE_PATTERN}|@[\w.-]+\.\w+"
            r"|name is|called|works at|lives in|work at|live in",
            re.IGNORECASE,
        ),
        "entity",
    ),
    (re.compile(r"is|are|has|have", re.IGNORECASE), "fact"),
]


def detect_category(text: str) -> MemoryCategory:
    """Assign exactly one category to *text*."""
    for pattern, category in CATEGORY_RULES:
        if pattern.search(text):
            return category
    return "other"
