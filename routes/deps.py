from fastapi import Depends, Header, HTTPException, Request, status

from agent.chat_agent import ChatAgent
from models.user import Session
from services.modals import ModalNotFound
from services.session_store import DocumentNotFound, SessionStore
from services.tabs import DEFAULT_TAB, TabRegistry, TabState
from utils.auth import get_session, get_token


def get_store(request: Request) -> SessionStore:
    return request.app.state.store


def get_tabs(request: Request) -> TabRegistry:
    return request.app.state.tabs


def get_agent(request: Request) -> ChatAgent:
    """Lazily build the agent so the LLM client is only configured when first needed."""
    agent = getattr(request.app.state, "agent", None)
    if agent is None:
        agent = ChatAgent(request.app.state.store)
        request.app.state.agent = agent
    return agent


async def get_tab_state(
    session: Session = Depends(get_session),
    token: str = Depends(get_token),
    tabs: TabRegistry = Depends(get_tabs),
    x_tab_id: str = Header(DEFAULT_TAB),
) -> TabState:
    """UI state of the calling tab (``X-Tab-Id`` header)."""
    return tabs.get(session, x_tab_id, token)


def not_found(error: LookupError) -> HTTPException:
    """Translate a missing document or modal into a 404."""
    if isinstance(error, DocumentNotFound):
        detail = f"{error.kind} not found"
    elif isinstance(error, ModalNotFound):
        detail = "Modal not found"
    else:
        detail = "Not found"
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)
