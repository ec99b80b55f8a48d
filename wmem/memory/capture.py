"""Heuristic filter deciding which conversation text is worth remembering.

Noise rules reject first; then any trigger pattern accepts. Both are plain
tables so new rules can be added (and tested) one at a time.
"""

import re
from collections.abc import Callable

MIN_CAPTURE_LENGTH = 10
MAX_CAPTURE_LENGTH = 1000
MAX_EMOJI = 3

# Wraps auto-recall output; never capture our own injected context.
CONTEXT_MARKER = "<relevant-memories>"

PHONE_PATTERN = r"\+?\d{10,}"
EMAIL_PATTERN = r"[\w.-]+@[\w.-]+\.\w+"

_EMOJI = re.compile("[\U0001f300-\U0001f9ff]")

MEMORY_TRIGGERS: list[re.Pattern[str]] = [
    re.compile(r"remember|don't forget|keep in mind", re.IGNORECASE),
    re.compile(r"i prefer|i like|i hate|i love|i want|i need", re.IGNORECASE),
    re.compile(r"we decided|we agreed|going with|we'll use", re.IGNORECASE),
    re.compile(r"my name is|i'm called|call me", re.IGNORECASE),
    re.compile(r"my .+ is|i work at|i live in", re.IGNORECASE),
    re.compile(r"always|never|important to me", re.IGNORECASE),
    re.compile(PHONE_PATTERN),
    re.compile(EMAIL_PATTERN),
]


def count_emoji(text: str) -> int:
    return len(_EMOJI.findall(text))


# (reason, predicate): predicate returns True when the text is noise.
NOISE_RULES: list[tuple[str, Callable[[str], bool]]] = [
    ("too_short", lambda t: len(t) < MIN_CAPTURE_LENGTH),
    ("too_long", lambda t: len(t) > MAX_CAPTURE_LENGTH),
    ("injected_context", lambda t: CONTEXT_MARKER in t),
    ("markup", lambda t: t.startswith("<") and "</" in t),
    ("formatted_summary", lambda t: "**" in t and "\n-" in t),
    ("emoji_heavy", lambda t: count_emoji(t) > MAX_EMOJI),
]


def rejection_reason(text: str) -> str | None:
    """Name of the first noise rule *text* trips, or None."""
    for reason, is_noise in NOISE_RULES:
        if is_noise(text):
            return reason
    return None


def matches_trigger(text: str) -> bool:
    return any(pattern.search(text) for pattern in MEMORY_TRIGGERS)


def should_capture(text: str) -> bool:
    """Return True if *text* is a candidate for long-term storage."""
    if rejection_reason(text) is not None:
        return False
    return matches_trigger(text)
