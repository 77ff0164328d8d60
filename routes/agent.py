from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import StreamingResponse
from typing import Any, AsyncGenerator, Dict
import json
import logging

from agent.chat_agent import ChatAgent
from models.settings import CompletionRequest
from routes.deps import get_agent, get_store, not_found
from services.session_store import DocumentNotFound, SessionStore
from utils.auth import get_current_user
from starlette.concurrency import run_in_threadpool

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["agent"])


async def _validate(payload: CompletionRequest, email: str, store: SessionStore) -> None:
    if not payload.prompt.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Please provide a prompt!")
    if not payload.chat_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Please provide a valid chat ID!")
    try:
        await run_in_threadpool(store.get_chat, email, payload.chat_id)
    except DocumentNotFound as e:
        raise not_found(e)


@router.post("/ask-question")
async def ask_question(payload: CompletionRequest, current_user: dict = Depends(get_current_user),
                       agent: ChatAgent = Depends(get_agent), store: SessionStore = Depends(get_store)):
    """Body: { "prompt", "chatId", "model"?, "session"?, "promptSettings"? }

    Generates the reply, stores it as an assistant message and returns it.
    """
    await _validate(payload, current_user["email"], store)
    return await agent.process_query(
        prompt=payload.prompt.strip(),
        chat_id=payload.chat_id,
        user_email=current_user["email"],
        model=payload.model,
        settings=payload.prompt_settings,
    )


def _sse(data: Dict[str, Any]) -> str:
    return f"data: {json.dumps(data, ensure_ascii=False)}\n\n"


@router.post("/ask-question/stream")
async def ask_question_stream(payload: CompletionRequest, current_user: dict = Depends(get_current_user),
                              agent: ChatAgent = Depends(get_agent), store: SessionStore = Depends(get_store)):
    """Server-Sent Events: start, delta*, end (or error). The reply is stored when complete."""
    await _validate(payload, current_user["email"], store)

    async def event_generator() -> AsyncGenerator[bytes, None]:
        yield _sse({"type": "start", "chatId": payload.chat_id}).encode("utf-8")
        try:
            async for chunk in agent.stream_query(
                prompt=payload.prompt.strip(),
                chat_id=payload.chat_id,
                user_email=current_user["email"],
                model=payload.model,
                settings=payload.prompt_settings,
            ):
                yield _sse({"type": "delta", "content": chunk}).encode("utf-8")
        except Exception as e:
            logger.error(f"Streaming reply for chat {payload.chat_id} failed: {e}")
            yield _sse({"type": "error", "message": str(e)}).encode("utf-8")
            return

        yield _sse({"type": "end", "chatId": payload.chat_id}).encode("utf-8")

    return StreamingResponse(event_generator(), media_type="text/event-stream")
