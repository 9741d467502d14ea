"""
Category assignment policy.

decide() is a pure function of the classifier's category judgment and the
owner's existing categories. Applying the result to the store is a separate,
thin step (apply_decision), as is the explicit create-and-assign path used
after the user confirms a suggested category.
"""

import logging
from dataclasses import dataclass
from typing import Literal, Optional, Sequence

from iforgot.ai.classifier import CategoryJudgment
from iforgot.db.models import Category
from iforgot.db.store import NoteStore
from iforgot.errors import IForgotError

logger = logging.getLogger(__name__)

AUTO_ASSIGN_THRESHOLD = 0.8

SuggestedAction = Literal["assign", "create", "none"]


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class Decision:
    """Outcome of the category policy for one note."""
    category_id: Optional[str]
    auto_assigned: bool
    requires_confirmation: bool
    suggested_action: SuggestedAction


NO_ACTION = Decision(
    category_id=None,
    auto_assigned=False,
    requires_confirmation=False,
    suggested_action="none",
)


# PUBLIC_INTERFACE
@dataclass
class CategoryAssignment:
    """Result of create_and_assign_category; failures are reported, not raised."""
    success: bool
    category_id: Optional[str] = None
    category: Optional[Category] = None
    error: Optional[str] = None


# PUBLIC_INTERFACE
def decide(judgment: CategoryJudgment, existing_categories: Sequence[Category]) -> Decision:
    """
    Choose between auto-assigning, deferring to the user, or doing nothing.

    Rules, first match wins:
      1. "assign" with confidence > 0.8 and a category whose name equals the
         suggestion exactly -> auto-assign to that category.
      2. "create", or confidence <= 0.8 -> ask the user to confirm a new category.
      3. otherwise ("assign", confident, but no such category) -> nothing.

    A confidence of exactly 0.8 therefore defers even when the category exists.
    Name comparison is case-sensitive.
    """
    if judgment.action == "assign" and judgment.confidence > AUTO_ASSIGN_THRESHOLD:
        match = next((c for c in existing_categories if c.name == judgment.name), None)
        if match is not None:
            return Decision(
                category_id=match.id,
                auto_assigned=True,
                requires_confirmation=False,
                suggested_action="assign",
            )

    if judgment.action == "create" or judgment.confidence <= AUTO_ASSIGN_THRESHOLD:
        return Decision(
            category_id=None,
            auto_assigned=False,
            requires_confirmation=True,
            suggested_action="create",
        )

    return NO_ACTION


# PUBLIC_INTERFACE
def apply_decision(store: NoteStore, note_id: str, decision: Decision) -> None:
    """Persist an auto-assignment; deferred and no-op decisions leave the note untouched."""
    if decision.auto_assigned and decision.category_id:
        store.update_note_category(note_id, decision.category_id)
        logger.info("Auto-assigned note %s to category %s", note_id, decision.category_id)


# PUBLIC_INTERFACE
def handle_category_assignment(
    store: NoteStore,
    note_id: str,
    judgment: CategoryJudgment,
    existing_categories: Sequence[Category],
) -> Decision:
    """Decide and apply in one call."""
    decision = decide(judgment, existing_categories)
    apply_decision(store, note_id, decision)
    return decision


# PUBLIC_INTERFACE
def create_and_assign_category(
    store: NoteStore, note_id: str, owner_id: str, name: str
) -> CategoryAssignment:
    """
    Create a category for the owner and point the note at it.

    The two writes are not transactional: if the assignment fails the new
    category is left in place, unassigned.
    """
    try:
        category = store.insert_category(owner_id, name)
    except IForgotError as exc:
        logger.error("Could not create category %r for %s: %s", name, owner_id, exc.message)
        return CategoryAssignment(success=False, error=exc.message)

    try:
        store.update_note_category(note_id, category.id)
    except IForgotError as exc:
        logger.error(
            "Created category %s but could not assign it to note %s: %s",
            category.id, note_id, exc.message,
        )
        return CategoryAssignment(success=False, category_id=category.id, category=category, error=exc.message)

    return CategoryAssignment(success=True, category_id=category.id, category=category)
