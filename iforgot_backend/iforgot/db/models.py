from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import relationship, declarative_base
import datetime
import uuid

Base = declarative_base()


def _new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime.datetime:
    """Naive UTC, matching the timezone-less DateTime columns."""
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


# PUBLIC_INTERFACE
class User(Base):
    """
    Database model for a note owner. There is no login; the row only anchors ownership.
    """
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_new_id)
    email = Column(String, unique=True, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    notes = relationship("Note", back_populates="owner", cascade="all, delete-orphan")
    categories = relationship("Category", back_populates="owner", cascade="all, delete-orphan")


# PUBLIC_INTERFACE
class Category(Base):
    """
    Database model for a category. Names are meant to be unique per owner but this is not enforced.
    """
    __tablename__ = "categories"

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(36), ForeignKey("users.id", name="categories_user_id_fkey"), nullable=False, index=True)
    name = Column(String, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    owner = relationship("User", back_populates="categories")
    notes = relationship("Note", back_populates="category")


# PUBLIC_INTERFACE
class Note(Base):
    """
    Database model for a note with the metadata produced by the classifier.
    """
    __tablename__ = "notes"

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(36), ForeignKey("users.id", name="notes_user_id_fkey"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    category_id = Column(
        String(36),
        ForeignKey("categories.id", name="notes_category_id_fkey", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    themes = Column(JSON, default=list, nullable=False)
    sentiment = Column(String, nullable=True)
    mood = Column(String, nullable=True)
    action_items = Column(JSON, default=list, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    owner = relationship("User", back_populates="notes")
    category = relationship("Category", back_populates="notes")
    tasks = relationship(
        "Task",
        back_populates="note",
        cascade="all, delete-orphan",
        order_by="Task.created_at",
    )


# PUBLIC_INTERFACE
class Task(Base):
    """
    Database model for an action item extracted from a note.
    """
    __tablename__ = "tasks"

    id = Column(String(36), primary_key=True, default=_new_id)
    note_id = Column(
        String(36),
        ForeignKey("notes.id", name="tasks_note_id_fkey", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = Column(String(36), ForeignKey("users.id", name="tasks_user_id_fkey"), nullable=False)
    description = Column(Text, nullable=False)
    completed = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    note = relationship("Note", back_populates="tasks")
