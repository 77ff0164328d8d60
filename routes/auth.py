from fastapi import APIRouter, Depends

from models.user import Session
from routes.deps import get_store, get_tabs
from services.session_store import SessionStore
from services.tabs import TabRegistry
from utils.auth import get_session

router = APIRouter(prefix="/auth", tags=["authentication"])


@router.get("/session", response_model=Session)
def read_session(session: Session = Depends(get_session), store: SessionStore = Depends(get_store)):
    """Current session as issued by the identity provider."""
    store.touch_user(session.user.email, session.user.name, session.user.image)
    return session


@router.post("/logout")
def logout(session: Session = Depends(get_session), tabs: TabRegistry = Depends(get_tabs)):
    """End the session: drop the user's tab state (client should remove token)."""
    closed = tabs.drop_user(session.user.email)
    return {"message": "Successfully logged out", "closed_tabs": closed}
