"""
SQLAlchemy-backed note store.

The rest of the application only talks to the database through NoteStore, so
the categorization policy and its tests never see a query.
"""

import logging
from typing import Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from iforgot.db.models import Category, Note, Task, User, utcnow
from iforgot.errors import NotFoundError, StoreError

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
class NoteStore:
    """Persistence for owners, notes, categories and tasks, bound to one session."""

    def __init__(self, db: Session):
        self.db = db

    def _commit(self, owner_id: Optional[str] = None) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Store commit failed: %s", exc)
            raise StoreError.from_exception(exc, owner_id=owner_id) from exc

    # --- owners ---

    def ensure_owner(self, owner_id: str, email: Optional[str] = None) -> User:
        """Return the owner row, creating it when missing."""
        user = self.db.get(User, owner_id)
        if user is not None:
            return user
        user = User(id=owner_id, email=email)
        self.db.add(user)
        self._commit(owner_id)
        self.db.refresh(user)
        logger.info("Created owner %s", owner_id)
        return user

    # --- notes ---

    def insert_note(
        self,
        owner_id: str,
        content: str,
        themes: Iterable[str] = (),
        sentiment: Optional[str] = None,
        mood: Optional[str] = None,
        action_items: Iterable[str] = (),
    ) -> Note:
        """Insert a note with its classifier metadata."""
        note = Note(
            user_id=owner_id,
            content=content,
            themes=list(themes),
            sentiment=sentiment,
            mood=mood,
            action_items=list(action_items),
        )
        self.db.add(note)
        self._commit(owner_id)
        self.db.refresh(note)
        return note

    def fetch_note(self, note_id: str, owner_id: Optional[str] = None) -> Note:
        """Get one note with its category and tasks; raises NotFoundError if missing or not owned."""
        query = (
            self.db.query(Note)
            .options(selectinload(Note.category), selectinload(Note.tasks))
            .filter(Note.id == note_id)
        )
        if owner_id is not None:
            query = query.filter(Note.user_id == owner_id)
        note = query.first()
        if note is None:
            raise NotFoundError("Note not found")
        return note

    def fetch_notes(
        self,
        owner_id: str,
        category_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Note]:
        """List an owner's notes newest first, optionally filtered by category."""
        query = (
            self.db.query(Note)
            .options(selectinload(Note.category), selectinload(Note.tasks))
            .filter(Note.user_id == owner_id)
        )
        if category_id:
            query = query.filter(Note.category_id == category_id)
        query = query.order_by(Note.created_at.desc(), Note.id.desc())
        if limit:
            query = query.limit(limit)
        return query.all()

    def update_note_category(self, note_id: str, category_id: Optional[str]) -> Note:
        """Point a note at a category (or clear it with None)."""
        note = self.db.get(Note, note_id)
        if note is None:
            raise NotFoundError("Note not found")
        note.category_id = category_id
        self._commit(note.user_id)
        return note

    def update_note_content(self, note_id: str, owner_id: str, content: str) -> Note:
        """Replace a note's content; only the owner may do this."""
        note = self.fetch_note(note_id, owner_id)
        note.content = content
        note.updated_at = utcnow()
        self._commit(owner_id)
        self.db.refresh(note)
        return note

    def delete_note(self, note_id: str, owner_id: str) -> None:
        """Delete a note and its tasks; only the owner may do this."""
        note = self.fetch_note(note_id, owner_id)
        self.db.delete(note)
        self._commit(owner_id)

    # --- categories ---

    def insert_category(self, owner_id: str, name: str) -> Category:
        category = Category(user_id=owner_id, name=name)
        self.db.add(category)
        self._commit(owner_id)
        self.db.refresh(category)
        return category

    def fetch_categories(self, owner_id: str) -> List[Category]:
        return (
            self.db.query(Category)
            .filter(Category.user_id == owner_id)
            .order_by(Category.name, Category.id)
            .all()
        )

    # --- tasks ---

    def insert_tasks(self, note_id: str, owner_id: str, descriptions: Iterable[str]) -> List[Task]:
        """Insert one open task per action item description."""
        tasks = [
            Task(note_id=note_id, user_id=owner_id, description=description, completed=False)
            for description in descriptions
        ]
        if not tasks:
            return []
        self.db.add_all(tasks)
        self._commit(owner_id)
        for task in tasks:
            self.db.refresh(task)
        return tasks
