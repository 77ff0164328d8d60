import asyncio
import json
from typing import AsyncGenerator, List

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import StreamingResponse
from starlette.concurrency import run_in_threadpool

from models.chat import Chat, ChatUpdate, Message
from routes.deps import get_store, not_found
from services.realtime import messages_key
from services.session_store import DocumentNotFound, SessionStore
from utils.auth import get_current_user

router = APIRouter(prefix="/chat", tags=["chat"])

KEEPALIVE_SECONDS = 15.0


@router.post("/", response_model=Chat, status_code=status.HTTP_201_CREATED)
def create_chat(current_user: dict = Depends(get_current_user), store: SessionStore = Depends(get_store)):
    """Create a new, untitled chat."""
    return store.create_chat(current_user["email"])


@router.get("/", response_model=List[Chat])
def get_chats(current_user: dict = Depends(get_current_user), store: SessionStore = Depends(get_store)):
    """Get all chats for the current user, pinned first, newest first."""
    return store.list_chats(current_user["email"])


@router.get("/{chat_id}", response_model=Chat)
def get_chat(chat_id: str, current_user: dict = Depends(get_current_user),
             store: SessionStore = Depends(get_store)):
    """Get a specific chat by ID."""
    try:
        return store.get_chat(current_user["email"], chat_id)
    except DocumentNotFound as e:
        raise not_found(e)


@router.put("/{chat_id}", response_model=Chat)
def update_chat(chat_id: str, chat_update: ChatUpdate, current_user: dict = Depends(get_current_user),
                store: SessionStore = Depends(get_store)):
    """Rename or pin a chat."""
    try:
        return store.update_chat(current_user["email"], chat_id, title=chat_update.title, pinned=chat_update.pinned)
    except DocumentNotFound as e:
        raise not_found(e)


@router.delete("/{chat_id}")
def delete_chat(chat_id: str, current_user: dict = Depends(get_current_user),
                store: SessionStore = Depends(get_store)):
    """Delete a chat and all its messages."""
    try:
        store.delete_chat(current_user["email"], chat_id)
    except DocumentNotFound as e:
        raise not_found(e)
    return {"message": "Chat deleted successfully"}


@router.get("/{chat_id}/messages", response_model=List[Message])
def get_chat_messages(chat_id: str, current_user: dict = Depends(get_current_user),
                      store: SessionStore = Depends(get_store)):
    """Get all messages in a chat, oldest first."""
    try:
        store.get_chat(current_user["email"], chat_id)
    except DocumentNotFound as e:
        raise not_found(e)
    return store.list_messages(current_user["email"], chat_id)


def _sse(data) -> str:
    return f"data: {json.dumps(data, ensure_ascii=False)}\n\n"


@router.get("/{chat_id}/messages/stream")
async def stream_chat_messages(chat_id: str, request: Request, current_user: dict = Depends(get_current_user),
                               store: SessionStore = Depends(get_store)):
    """Server-Sent Events: the ordered transcript now and after every new message."""
    email = current_user["email"]
    try:
        await run_in_threadpool(store.get_chat, email, chat_id)
    except DocumentNotFound as e:
        raise not_found(e)

    async def event_generator() -> AsyncGenerator[bytes, None]:
        async with store.hub.subscribe(messages_key(email, chat_id)) as queue:
            snapshot = await run_in_threadpool(store.message_snapshot, email, chat_id)
            yield _sse({"type": "snapshot", "messages": snapshot}).encode("utf-8")

            while not await request.is_disconnected():
                try:
                    snapshot = await asyncio.wait_for(queue.get(), timeout=KEEPALIVE_SECONDS)
                except asyncio.TimeoutError:
                    yield b": keepalive\n\n"
                    continue
                yield _sse({"type": "snapshot", "messages": snapshot}).encode("utf-8")

    return StreamingResponse(event_generator(), media_type="text/event-stream")
