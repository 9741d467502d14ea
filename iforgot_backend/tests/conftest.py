"""Shared fixtures: an in-memory SQLite store, a stub classifier and an API client factory."""

from typing import List, Optional

import pytest
from fastapi.testclient import TestClient

from iforgot.ai.classifier import CategoryJudgment, Classifier, Judgment
from iforgot.api.main import create_app
from iforgot.config import DEMO_OWNER_ID, Settings
from iforgot.db.db import create_session_factory, init_db
from iforgot.db.store import NoteStore
from iforgot.voice.transcribe import Transcriber

OWNER_ID = "owner-u"
OTHER_OWNER_ID = "owner-v"


class StubClassifier(Classifier):
    """Classifier returning a fixed judgment (or raising a fixed error)."""

    name = "stub"

    def __init__(self, judgment: Optional[Judgment] = None, error: Optional[Exception] = None, available: bool = True):
        self.judgment = judgment
        self.error = error
        self.available = available
        self.calls: List[dict] = []

    def is_available(self) -> bool:
        return self.available

    def classify(self, note_text, known_categories, prompt=None, **options) -> Judgment:
        self.calls.append(
            {"text": note_text, "categories": list(known_categories), "prompt": prompt, **options}
        )
        if self.error is not None:
            raise self.error
        return self.judgment


def make_judgment(action="assign", name="Work", confidence=0.9, action_items=None, themes=None) -> Judgment:
    return Judgment(
        themes=themes if themes is not None else ["planning"],
        sentiment="neutral",
        action_items=action_items or [],
        category=CategoryJudgment(action=action, name=name, confidence=confidence),
    )


@pytest.fixture
def session():
    engine, factory = create_session_factory("sqlite://")
    init_db(engine)
    db = factory()
    try:
        yield db
    finally:
        db.close()
        engine.dispose()


@pytest.fixture
def store(session) -> NoteStore:
    note_store = NoteStore(session)
    note_store.ensure_owner(OWNER_ID)
    note_store.ensure_owner(OTHER_OWNER_ID)
    return note_store


@pytest.fixture
def make_client():
    """Build a TestClient around a fresh app and in-memory database."""

    def _make(classifier: Optional[Classifier] = None, transcriber: Optional[Transcriber] = None) -> TestClient:
        settings = Settings(database_url="sqlite://", demo_owner_id=DEMO_OWNER_ID, seed_demo_owner=True)
        app = create_app(
            settings,
            classifier=classifier or StubClassifier(available=False),
            transcriber=transcriber or Transcriber(),
        )
        return TestClient(app)

    return _make
