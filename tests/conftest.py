"""
Pytest fixtures: an in-memory MongoDB, a store on top of it, an app wired
to both, and bearer tokens for two users.
"""

from collections.abc import Generator
from typing import Any, Dict, List
from unittest.mock import MagicMock

import mongomock
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from agent.chat_agent import ChatAgent, LLMService
from main import create_app
from models.settings import PromptSettings
from models.user import Session, SessionUser
from services.completion_client import CompletionClient
from services.notifications import Notifier
from services.session_store import SessionStore
from utils.auth import create_access_token

ALICE = "alice@example.com"
BOB = "bob@example.com"


class RecordingCompletionClient(CompletionClient):
    """Completion client that records submits instead of calling the endpoint."""

    def __init__(self, notifier: Notifier, token: str = ""):
        super().__init__("http://completion.test/api/ask-question", notifier, token=token)
        self.calls: List[Dict[str, Any]] = []

    def submit(self, prompt: str, chat_id: str, settings: PromptSettings, model: str, session: Session):
        self.calls.append(self.build_payload(prompt, chat_id, settings, model, session))
        return None


# =============================================================================
# Storage
# =============================================================================


@pytest.fixture
def database():
    """Fresh in-memory MongoDB database."""
    return mongomock.MongoClient()["chat_test"]


@pytest.fixture
def store(database) -> SessionStore:
    return SessionStore(database)


@pytest.fixture
def session() -> Session:
    return Session(user=SessionUser(email=ALICE, name="Alice"))


# =============================================================================
# App
# =============================================================================


@pytest.fixture
def llm_service() -> MagicMock:
    llm = MagicMock(spec=LLMService)
    llm.generate_reply.return_value = "Hello! How can I help?"
    llm.stream_reply.return_value = iter(["Hello", "! How can ", "I help?"])
    return llm


@pytest.fixture
def completion_clients() -> List[RecordingCompletionClient]:
    return []


@pytest.fixture
def app(database, llm_service, completion_clients) -> FastAPI:
    def factory(notifier: Notifier, token: str) -> CompletionClient:
        client = RecordingCompletionClient(notifier, token)
        completion_clients.append(client)
        return client

    app = create_app(database=database, completion_factory=factory)
    app.state.agent = ChatAgent(app.state.store, llm_service=llm_service, history_limit=10)
    return app


@pytest.fixture
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    with TestClient(app) as client:
        yield client


@pytest.fixture
def app_store(app: FastAPI) -> SessionStore:
    return app.state.store


def make_headers(email: str, tab: str = "default") -> Dict[str, str]:
    token = create_access_token({"sub": email, "name": email.split("@")[0]})
    return {"Authorization": f"Bearer {token}", "X-Tab-Id": tab}


@pytest.fixture
def auth_headers() -> Dict[str, str]:
    return make_headers(ALICE)


@pytest.fixture
def bob_headers() -> Dict[str, str]:
    return make_headers(BOB)
