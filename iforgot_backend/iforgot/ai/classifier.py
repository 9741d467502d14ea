"""
Note classification with Claude.

A Classifier turns note text plus the owner's category names into a Judgment
(themes, sentiment, mood, action items and a category suggestion). Claude is
the only provider. Callers that must not fail go through classify_or_default,
which degrades every problem to default_judgment(); its confidence of 0 is the
signal that classification was skipped.
"""

import json
import logging
import math
import re
from abc import ABC, abstractmethod
from typing import List, Literal, Optional, Sequence, Tuple

import anthropic
import pydantic
from pydantic import BaseModel, Field

from iforgot.ai.prompts import build_default_prompt
from iforgot.errors import ClassifierError

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY_NAME = "Uncategorized"
MAX_THEMES = 4
MISSING_CONFIDENCE = 0.5

_JSON_BLOCK = re.compile(r"\{[\s\S]*\}")


# PUBLIC_INTERFACE
class CategoryJudgment(BaseModel):
    """The classifier's category suggestion for one note."""
    action: Literal["assign", "create"] = "create"
    name: str = DEFAULT_CATEGORY_NAME
    confidence: float = Field(0.0, ge=0.0, le=1.0)


# PUBLIC_INTERFACE
class NoteEntities(BaseModel):
    people: List[str] = Field(default_factory=list)
    places: List[str] = Field(default_factory=list)
    dates: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)


# PUBLIC_INTERFACE
class Judgment(BaseModel):
    """Structured analysis of a note. Produced per request, never stored as-is."""
    themes: List[str] = Field(default_factory=list)
    sentiment: Literal["positive", "negative", "neutral"] = "neutral"
    mood: Optional[str] = None
    action_items: List[str] = Field(default_factory=list)
    category: CategoryJudgment = Field(default_factory=CategoryJudgment)
    summary: Optional[str] = None
    entities: Optional[NoteEntities] = None


# PUBLIC_INTERFACE
def default_judgment() -> Judgment:
    """The judgment used whenever classification is unavailable."""
    return Judgment(
        themes=[],
        sentiment="neutral",
        action_items=[],
        category=CategoryJudgment(action="create", name=DEFAULT_CATEGORY_NAME, confidence=0.0),
    )


def _string_list(value) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item).strip() for item in value if item is not None and str(item).strip()]


def _confidence(value) -> float:
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return MISSING_CONFIDENCE
    # 0 is reserved for "classification skipped"; json.loads also accepts NaN and Infinity
    if confidence == 0 or not math.isfinite(confidence):
        return MISSING_CONFIDENCE
    return min(max(confidence, 0.0), 1.0)


def _entities(value) -> Optional[NoteEntities]:
    if not isinstance(value, dict):
        return None
    return NoteEntities(
        people=_string_list(value.get("people")),
        places=_string_list(value.get("places")),
        dates=_string_list(value.get("dates")),
        tags=_string_list(value.get("tags")),
    )


# PUBLIC_INTERFACE
def parse_judgment(text: str) -> Judgment:
    """
    Read a Judgment out of a model response.

    The outermost {...} block is decoded, so explanations around the JSON are
    tolerated. Missing fields get defaults; text without decodable JSON yields
    default_judgment().
    """
    match = _JSON_BLOCK.search(text or "")
    if not match:
        logger.warning("No JSON found in classifier response")
        return default_judgment()
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        logger.warning("Could not decode classifier response: %s", exc)
        return default_judgment()
    if not isinstance(parsed, dict):
        return default_judgment()

    raw_category = parsed.get("category")
    if not isinstance(raw_category, dict):
        raw_category = {}
    action = raw_category.get("action")
    name = raw_category.get("name")
    sentiment = parsed.get("sentiment")
    mood = parsed.get("mood")
    summary = parsed.get("summary")

    try:
        return Judgment(
            themes=_string_list(parsed.get("themes"))[:MAX_THEMES],
            sentiment=sentiment if sentiment in ("positive", "negative", "neutral") else "neutral",
            mood=str(mood) if mood else None,
            action_items=_string_list(parsed.get("action_items")),
            category=CategoryJudgment(
                action=action if action in ("assign", "create") else "create",
                name=str(name).strip() if name and str(name).strip() else DEFAULT_CATEGORY_NAME,
                confidence=_confidence(raw_category.get("confidence")),
            ),
            summary=str(summary) if summary else None,
            entities=_entities(parsed.get("entities")),
        )
    except pydantic.ValidationError as exc:
        logger.warning("Classifier response did not fit the judgment schema: %s", exc)
        return default_judgment()


# PUBLIC_INTERFACE
class Classifier(ABC):
    """Interface every note classifier implements."""

    name = "base"

    @abstractmethod
    def is_available(self) -> bool:
        """True when the classifier is configured and may be called."""

    @abstractmethod
    def classify(
        self,
        note_text: str,
        known_categories: Sequence[str],
        prompt: Optional[str] = None,
        extract_entities: bool = True,
        generate_summary: bool = True,
        detect_mood: bool = True,
    ) -> Judgment:
        """
        Analyse a note.

        Raises:
            ClassifierError: If the provider cannot be reached or gives no answer.
        """


# PUBLIC_INTERFACE
class ClaudeClassifier(Classifier):
    """Classifier backed by the Anthropic Messages API."""

    name = "claude"

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "claude-sonnet-4-20250514",
        max_tokens: int = 1024,
        timeout: float = 30.0,
    ):
        self.api_key = api_key
        self.model = model
        self.max_tokens = max_tokens
        self._client = anthropic.Anthropic(api_key=api_key, timeout=timeout) if api_key else None

    def is_available(self) -> bool:
        return self._client is not None

    def classify(
        self,
        note_text: str,
        known_categories: Sequence[str],
        prompt: Optional[str] = None,
        extract_entities: bool = True,
        generate_summary: bool = True,
        detect_mood: bool = True,
    ) -> Judgment:
        if self._client is None:
            raise ClassifierError("ANTHROPIC_API_KEY is not configured")

        prompt = prompt or build_default_prompt(
            note_text,
            list(known_categories),
            extract_entities=extract_entities,
            generate_summary=generate_summary,
            detect_mood=detect_mood,
        )
        try:
            message = self._client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.APIError as exc:
            raise ClassifierError(f"Claude request failed: {exc}") from exc

        text = next(
            (block.text for block in message.content if getattr(block, "type", None) == "text"),
            None,
        )
        if text is None:
            raise ClassifierError("No text response from Claude")
        return parse_judgment(text)


# PUBLIC_INTERFACE
def classify_or_default(
    classifier: Optional[Classifier],
    note_text: str,
    known_categories: Sequence[str],
    **options,
) -> Tuple[Judgment, bool]:
    """
    Classify a note without ever failing.

    Returns:
        (judgment, skipped) where skipped is True when the default judgment was
        substituted because the classifier is missing, unconfigured or failed.
    """
    if classifier is None or not classifier.is_available():
        logger.info("Classifier not configured; saving note without AI analysis")
        return default_judgment(), True
    try:
        judgment = classifier.classify(note_text, known_categories, **options)
        # an unparseable answer comes back as the default judgment
        return judgment, judgment.category.confidence == 0
    except ClassifierError as exc:
        logger.warning("Classifier failed, using default judgment: %s", exc.message)
        return default_judgment(), True
