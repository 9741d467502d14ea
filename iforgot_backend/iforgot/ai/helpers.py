"""Local text helpers that complement a Judgment without another API call."""

import re
from typing import List, Sequence

from iforgot.ai.classifier import Judgment

URGENT_KEYWORDS = (
    "urgent", "asap", "emergency", "critical", "now", "immediately",
    "today", "deadline", "important", "must", "need to",
)

REVIEW_CONFIDENCE = 0.8
REVIEW_TASK_COUNT = 3

_MENTION = re.compile(r"@(\w+)")
_HASHTAG = re.compile(r"#(\w+)")


def _unique(items: Sequence[str]) -> List[str]:
    return list(dict.fromkeys(items))


# PUBLIC_INTERFACE
def extract_mentions(note_content: str) -> List[str]:
    """@mentions in order of first appearance, without the @."""
    return _unique(_MENTION.findall(note_content))


# PUBLIC_INTERFACE
def extract_hashtags(note_content: str) -> List[str]:
    return _unique(_HASHTAG.findall(note_content))


# PUBLIC_INTERFACE
def detect_urgency(note_content: str, action_items: Sequence[str]) -> str:
    """
    Rough urgency level: 'high', 'medium' or 'low'.

    High needs two urgent keywords, or one plus at least one action item.
    """
    content = note_content.lower()
    urgent_count = sum(1 for keyword in URGENT_KEYWORDS if keyword in content)

    if urgent_count >= 2 or (urgent_count >= 1 and action_items):
        return "high"
    if action_items or urgent_count == 1:
        return "medium"
    return "low"


# PUBLIC_INTERFACE
def needs_review(judgment: Judgment) -> bool:
    """True when a person should look at the analysis before trusting it."""
    return (
        judgment.category.action == "create"
        or judgment.category.confidence < REVIEW_CONFIDENCE
        or len(judgment.action_items) > REVIEW_TASK_COUNT
    )


# PUBLIC_INTERFACE
def note_insights(note_content: str, judgment: Judgment) -> dict:
    return {
        "urgency": detect_urgency(note_content, judgment.action_items),
        "hashtags": extract_hashtags(note_content),
        "mentions": extract_mentions(note_content),
        "needsReview": needs_review(judgment),
    }
