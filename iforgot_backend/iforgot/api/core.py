import datetime
import logging
from typing import List, Optional

from fastapi import Depends, Request
from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from iforgot.ai.classifier import Classifier, Judgment, classify_or_default
from iforgot.config import Settings
from iforgot.db.db import get_db
from iforgot.db.store import NoteStore
from iforgot.errors import StoreError
from iforgot.notes.categorization import NO_ACTION, handle_category_assignment
from iforgot.voice.transcribe import Transcriber

logger = logging.getLogger(__name__)

AI_SKIPPED_WARNING = (
    "Note saved without AI processing. Configure ANTHROPIC_API_KEY to enable "
    "automatic categorization and theme extraction."
)

_OWNER_ID = AliasChoices("ownerId", "userId", "owner_id")
_NOTE_ID = AliasChoices("noteId", "note_id")
_CONTENT = AliasChoices("content", "noteContent")


class ApiModel(BaseModel):
    """Envelope models serialize with camelCase keys."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ==== Row Schemas ====

# PUBLIC_INTERFACE
class CategoryRead(BaseModel):
    """Returned data for a category."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    name: str
    created_at: datetime.datetime
    updated_at: datetime.datetime


# PUBLIC_INTERFACE
class TaskRead(BaseModel):
    """Returned data for an action item."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    note_id: str
    user_id: str
    description: str
    completed: bool
    created_at: datetime.datetime


# PUBLIC_INTERFACE
class NoteRead(BaseModel):
    """Returned data for a note, with its category and tasks."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    content: str
    category_id: Optional[str] = None
    category: Optional[CategoryRead] = None
    themes: List[str] = []
    sentiment: Optional[str] = None
    mood: Optional[str] = None
    action_items: List[str] = []
    tasks: List[TaskRead] = []
    created_at: datetime.datetime
    updated_at: datetime.datetime


# ==== Request Schemas ====

# PUBLIC_INTERFACE
class NoteCreate(BaseModel):
    """Input schema for creating a note."""
    content: str = Field(..., min_length=1, validation_alias=_CONTENT)
    owner_id: str = Field(..., min_length=1, validation_alias=_OWNER_ID)


# PUBLIC_INTERFACE
class NoteUpdate(BaseModel):
    """Input schema for updating a note."""
    note_id: str = Field(..., min_length=1, validation_alias=_NOTE_ID)
    content: str = Field(..., min_length=1, validation_alias=_CONTENT)
    owner_id: str = Field(..., min_length=1, validation_alias=_OWNER_ID)


# PUBLIC_INTERFACE
class CategoryCreate(BaseModel):
    """Input schema for creating a category, optionally assigning it to a note."""
    name: str = Field(..., min_length=1, validation_alias=AliasChoices("name", "categoryName"))
    owner_id: str = Field(..., min_length=1, validation_alias=_OWNER_ID)
    note_id: Optional[str] = Field(None, validation_alias=_NOTE_ID)


# PUBLIC_INTERFACE
class SimpleNoteCreate(BaseModel):
    """Input schema for a note saved for the demo owner without analysis."""
    content: str = Field(..., min_length=1, validation_alias=_CONTENT)


# PUBLIC_INTERFACE
class AnalysisOptions(ApiModel):
    extract_entities: bool = True
    generate_summary: bool = True
    detect_mood: bool = True


# PUBLIC_INTERFACE
class ProcessNoteRequest(BaseModel):
    """Input schema for analysing text without saving it."""
    content: str = Field(..., min_length=1, validation_alias=_CONTENT)
    existing_categories: List[str] = Field(
        default_factory=list, validation_alias=AliasChoices("existingCategories", "existing_categories")
    )
    template_name: Optional[str] = Field(None, validation_alias=AliasChoices("templateName", "template_name"))
    custom_prompt: Optional[str] = Field(None, validation_alias=AliasChoices("customPrompt", "custom_prompt"))
    user_context: Optional[str] = Field(None, validation_alias=AliasChoices("userContext", "user_context"))
    options: AnalysisOptions = Field(default_factory=AnalysisOptions)


# ==== Response Schemas ====

# PUBLIC_INTERFACE
class CategoryOutcome(ApiModel):
    """What the category policy did with the classifier's suggestion."""
    auto_assigned: bool
    requires_confirmation: bool
    suggested_action: str
    suggested_name: str
    confidence: float


# PUBLIC_INTERFACE
class CreateNoteResponse(ApiModel):
    success: bool = True
    note: NoteRead
    analysis: Judgment
    ai_processing_skipped: bool
    warning: Optional[str] = None
    category: CategoryOutcome


# PUBLIC_INTERFACE
class NoteResponse(ApiModel):
    success: bool = True
    note: NoteRead


# PUBLIC_INTERFACE
class NoteListResponse(ApiModel):
    success: bool = True
    notes: List[NoteRead]


# PUBLIC_INTERFACE
class CategoryResponse(ApiModel):
    success: bool = True
    category_id: Optional[str] = None
    category: Optional[CategoryRead] = None
    message: str


# PUBLIC_INTERFACE
class CategoryListResponse(ApiModel):
    success: bool = True
    categories: List[CategoryRead]


# PUBLIC_INTERFACE
class NoteInsights(ApiModel):
    urgency: str
    hashtags: List[str]
    mentions: List[str]
    needs_review: bool


# PUBLIC_INTERFACE
class ProcessNoteResponse(ApiModel):
    success: bool = True
    data: Judgment
    ai_processing_skipped: bool
    insights: NoteInsights


# PUBLIC_INTERFACE
class TemplateInfo(ApiModel):
    key: str
    name: str
    description: str


# PUBLIC_INTERFACE
class TemplateListResponse(ApiModel):
    success: bool = True
    templates: List[TemplateInfo]


# PUBLIC_INTERFACE
class TranscribeResponse(ApiModel):
    success: bool = True
    text: str
    provider: Optional[str] = None


# PUBLIC_INTERFACE
class SuccessResponse(ApiModel):
    success: bool = True


# ==== Dependencies ====

# PUBLIC_INTERFACE
def get_settings(request: Request) -> Settings:
    """Settings the app was created with."""
    return request.app.state.settings


# PUBLIC_INTERFACE
def get_store(db=Depends(get_db)) -> NoteStore:
    """A NoteStore bound to the request's session."""
    return NoteStore(db)


# PUBLIC_INTERFACE
def get_classifier(request: Request) -> Optional[Classifier]:
    return request.app.state.classifier


# PUBLIC_INTERFACE
def get_transcriber(request: Request) -> Transcriber:
    return request.app.state.transcriber


# ==== Note flows (used by API routes) ====

# PUBLIC_INTERFACE
def create_note_with_analysis(
    store: NoteStore,
    classifier: Optional[Classifier],
    owner_id: str,
    content: str,
) -> CreateNoteResponse:
    """
    Classify, save, categorize and extract tasks for a new note.

    Classification problems never fail the request. Store failures do, except
    for task persistence, which is logged and tolerated once the note exists.
    """
    categories = store.fetch_categories(owner_id)
    judgment, skipped = classify_or_default(classifier, content, [c.name for c in categories])

    note = store.insert_note(
        owner_id,
        content,
        themes=judgment.themes,
        sentiment=judgment.sentiment,
        mood=judgment.mood,
        action_items=judgment.action_items,
    )

    if skipped:
        decision = NO_ACTION
    else:
        decision = handle_category_assignment(store, note.id, judgment.category, categories)

    if judgment.action_items:
        try:
            store.insert_tasks(note.id, owner_id, judgment.action_items)
        except StoreError as exc:
            logger.error("Error creating tasks for note %s: %s", note.id, exc.message)

    note = store.fetch_note(note.id)
    return CreateNoteResponse(
        note=NoteRead.model_validate(note),
        analysis=judgment,
        ai_processing_skipped=skipped,
        warning=AI_SKIPPED_WARNING if skipped else None,
        category=CategoryOutcome(
            auto_assigned=decision.auto_assigned,
            requires_confirmation=decision.requires_confirmation,
            suggested_action=decision.suggested_action,
            suggested_name=judgment.category.name,
            confidence=judgment.category.confidence,
        ),
    )
