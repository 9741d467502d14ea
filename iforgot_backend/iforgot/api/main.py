import logging
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, File, Query, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from iforgot.ai.classifier import ClaudeClassifier, Classifier, classify_or_default
from iforgot.ai.helpers import note_insights
from iforgot.ai.prompts import build_custom_prompt, get_prompt_template, list_templates
from iforgot.api.core import (
    CategoryCreate, CategoryListResponse, CategoryRead, CategoryResponse,
    CreateNoteResponse, NoteCreate, NoteInsights, NoteListResponse, NoteRead,
    NoteResponse, NoteUpdate, ProcessNoteRequest, ProcessNoteResponse,
    SimpleNoteCreate, SuccessResponse, TemplateInfo, TemplateListResponse,
    TranscribeResponse,
    create_note_with_analysis, get_classifier, get_settings, get_store, get_transcriber,
)
from iforgot.config import Settings
from iforgot.db.db import create_session_factory, init_db
from iforgot.db.store import NoteStore
from iforgot.errors import IForgotError, StoreError, ValidationError
from iforgot.logging_config import configure_logging
from iforgot.notes.categorization import create_and_assign_category
from iforgot.voice.transcribe import Transcriber

logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "notes", "description": "Create, list, update and delete notes"},
    {"name": "categories", "description": "List categories and confirm suggested ones"},
    {"name": "analysis", "description": "Analyse note text with Claude"},
    {"name": "voice", "description": "Transcribe voice notes"},
]

router = APIRouter()


@router.get("/", tags=["health"])
def health_check():
    """Health check root."""
    return {"message": "Healthy"}

# --- Notes Endpoints ---

# PUBLIC_INTERFACE
@router.post("/api/notes", response_model=CreateNoteResponse, tags=["notes"], summary="Create and analyse a note")
def create_user_note(payload: NoteCreate, store: NoteStore = Depends(get_store), classifier=Depends(get_classifier)):
    """Save a note, with Claude's themes, action items and category suggestion when available."""
    return create_note_with_analysis(store, classifier, payload.owner_id, payload.content)

# PUBLIC_INTERFACE
@router.get("/api/notes", response_model=NoteListResponse, tags=["notes"], summary="List notes")
def list_notes(
    owner_id: str = Query(..., alias="ownerId", min_length=1),
    category_id: Optional[str] = Query(None, alias="categoryId"),
    limit: Optional[int] = Query(None, ge=1, le=500),
    store: NoteStore = Depends(get_store),
):
    """List an owner's notes newest first. Use ?categoryId= to filter."""
    notes = store.fetch_notes(owner_id, category_id=category_id, limit=limit)
    return NoteListResponse(notes=[NoteRead.model_validate(n) for n in notes])

# PUBLIC_INTERFACE
@router.get("/api/notes/{note_id}", response_model=NoteResponse, tags=["notes"], summary="Get a note")
def get_user_note(
    note_id: str,
    owner_id: str = Query(..., alias="ownerId", min_length=1),
    store: NoteStore = Depends(get_store),
):
    """Get a single note (must belong to the owner)."""
    return NoteResponse(note=NoteRead.model_validate(store.fetch_note(note_id, owner_id)))

# PUBLIC_INTERFACE
@router.put("/api/notes", response_model=NoteResponse, tags=["notes"], summary="Update a note")
def update_user_note(payload: NoteUpdate, store: NoteStore = Depends(get_store)):
    """Replace the content of a note (must belong to the owner)."""
    note = store.update_note_content(payload.note_id, payload.owner_id, payload.content)
    return NoteResponse(note=NoteRead.model_validate(note))

# PUBLIC_INTERFACE
@router.delete("/api/notes/{note_id}", response_model=SuccessResponse, tags=["notes"], summary="Delete a note")
def delete_user_note(
    note_id: str,
    owner_id: str = Query(..., alias="ownerId", min_length=1),
    store: NoteStore = Depends(get_store),
):
    """Delete one of the owner's notes together with its tasks."""
    store.delete_note(note_id, owner_id)
    return SuccessResponse()

# --- Category Endpoints ---

# PUBLIC_INTERFACE
@router.get("/api/categories", response_model=CategoryListResponse, tags=["categories"], summary="List categories")
def list_categories(owner_id: str = Query(..., alias="ownerId", min_length=1), store: NoteStore = Depends(get_store)):
    return CategoryListResponse(
        categories=[CategoryRead.model_validate(c) for c in store.fetch_categories(owner_id)]
    )

# PUBLIC_INTERFACE
@router.post("/api/categories", response_model=CategoryResponse, tags=["categories"], summary="Create a category")
def create_category(payload: CategoryCreate, store: NoteStore = Depends(get_store)):
    """Create a category; with noteId the note is assigned to it in the same request."""
    if payload.note_id:
        result = create_and_assign_category(store, payload.note_id, payload.owner_id, payload.name)
        if not result.success:
            raise StoreError(result.error or "Failed to create category")
        return CategoryResponse(
            category_id=result.category_id,
            category=CategoryRead.model_validate(result.category),
            message="Category created and assigned to note",
        )

    category = store.insert_category(payload.owner_id, payload.name)
    return CategoryResponse(
        category_id=category.id,
        category=CategoryRead.model_validate(category),
        message="Category created successfully",
    )

# --- Analysis Endpoints ---

# PUBLIC_INTERFACE
@router.post("/api/process-note", response_model=ProcessNoteResponse, tags=["analysis"], summary="Analyse note text")
def process_note(payload: ProcessNoteRequest, classifier=Depends(get_classifier)):
    """Run the classifier on text without saving anything, optionally with a named template or custom prompt."""
    prompt = None
    if payload.custom_prompt:
        prompt = build_custom_prompt(
            payload.custom_prompt, payload.content, payload.existing_categories, payload.user_context
        )
    if payload.template_name:
        template = get_prompt_template(payload.template_name)
        if template is None:
            raise ValidationError(f"Unknown template: {payload.template_name}")
        prompt = template.build(payload.content, payload.existing_categories)

    judgment, skipped = classify_or_default(
        classifier,
        payload.content,
        payload.existing_categories,
        prompt=prompt,
        extract_entities=payload.options.extract_entities,
        generate_summary=payload.options.generate_summary,
        detect_mood=payload.options.detect_mood,
    )
    return ProcessNoteResponse(
        data=judgment,
        ai_processing_skipped=skipped,
        insights=NoteInsights(**note_insights(payload.content, judgment)),
    )

# PUBLIC_INTERFACE
@router.get("/api/process-note", response_model=TemplateListResponse, tags=["analysis"], summary="List prompt templates")
def get_templates():
    return TemplateListResponse(templates=[TemplateInfo(**t) for t in list_templates()])

# --- Demo owner Endpoints ---

# PUBLIC_INTERFACE
@router.get("/api/simple-note", response_model=NoteListResponse, tags=["notes"], summary="List demo notes")
def list_simple_notes(store: NoteStore = Depends(get_store), settings: Settings = Depends(get_settings)):
    """Notes of the configured demo owner."""
    notes = store.fetch_notes(settings.demo_owner_id)
    return NoteListResponse(notes=[NoteRead.model_validate(n) for n in notes])

# PUBLIC_INTERFACE
@router.post("/api/simple-note", response_model=NoteResponse, tags=["notes"], summary="Save a demo note")
def create_simple_note(
    payload: SimpleNoteCreate,
    store: NoteStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    """Save a note for the demo owner without any analysis."""
    note = store.insert_note(settings.demo_owner_id, payload.content)
    return NoteResponse(note=NoteRead.model_validate(note))

# --- Voice Endpoints ---

# PUBLIC_INTERFACE
@router.post("/api/transcribe", response_model=TranscribeResponse, tags=["voice"], summary="Transcribe audio")
def transcribe_audio(audio: Optional[UploadFile] = File(None), transcriber: Transcriber = Depends(get_transcriber)):
    """Transcribe an uploaded audio file (form field 'audio')."""
    if audio is None:
        raise ValidationError("No audio file provided")
    text = transcriber.transcribe(
        audio.file.read(),
        audio.content_type or "application/octet-stream",
        filename=audio.filename or "audio.webm",
    )
    return TranscribeResponse(text=text, provider=transcriber.provider)


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    error = errors[0]
    loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
    field = loc[-1] if loc else "body"
    if error.get("type") in ("missing", "string_too_short"):
        return f"Missing required field: {field}"
    return f"Invalid field {field}: {error.get('msg')}"


# PUBLIC_INTERFACE
def register_exception_handlers(app: FastAPI) -> None:
    """Render every failure as {"success": false, "error": ...}."""

    @app.exception_handler(IForgotError)
    async def iforgot_error_handler(request: Request, exc: IForgotError):
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
        return _error_response(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return _error_response(400, _validation_message(exc))

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return _error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error_response(500, str(exc) or type(exc).__name__)


# PUBLIC_INTERFACE
def create_app(
    settings: Optional[Settings] = None,
    classifier: Optional[Classifier] = None,
    transcriber: Optional[Transcriber] = None,
) -> FastAPI:
    """
    Build the application from explicit configuration.

    Run with: uvicorn iforgot.api.main:create_app --factory
    """
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    engine, session_factory = create_session_factory(settings.database_url)
    init_db(engine)
    if settings.seed_demo_owner:
        with session_factory() as db:
            NoteStore(db).ensure_owner(settings.demo_owner_id)

    if classifier is None:
        classifier = ClaudeClassifier(
            settings.anthropic_api_key,
            model=settings.anthropic_model,
            max_tokens=settings.classifier_max_tokens,
            timeout=settings.classifier_timeout_seconds,
        )
    if transcriber is None:
        transcriber = Transcriber(
            deepgram_api_key=settings.deepgram_api_key,
            openai_api_key=settings.openai_api_key,
            timeout=settings.transcribe_timeout_seconds,
        )

    app = FastAPI(
        title="iForgot API",
        description="Note-taking backend with AI categorization and voice transcription.",
        version="1.0",
        openapi_tags=openapi_tags,
    )
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.classifier = classifier
    app.state.transcriber = transcriber

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)
    app.include_router(router)

    if not classifier.is_available():
        logger.warning("ANTHROPIC_API_KEY not set; notes will be saved without AI analysis")
    logger.info("iForgot API ready (transcription provider: %s)", transcriber.provider or "none")
    return app
