"""Sidebar actions: new chat, prompt form and delete confirmations."""

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from models.composer import ModalAction, PromptModalEdit
from routes.deps import get_store, get_tab_state, not_found
from services.modals import ConfirmModal, ModalNotFound, PromptEditModal
from services.session_store import DocumentNotFound, SessionStore
from services.tabs import TabState

router = APIRouter(prefix="/ui", tags=["ui"])


def _email(tab: TabState) -> str:
    return tab.composer.session.user.email


@router.post("/chats/new", status_code=status.HTTP_201_CREATED)
async def new_chat(tab: TabState = Depends(get_tab_state), store: SessionStore = Depends(get_store)):
    """Create an untitled chat and point the client at it."""
    chat = await run_in_threadpool(store.create_chat, _email(tab))
    location = f"/chat/{chat.id}"
    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content={"chat": chat.model_dump(mode="json"), "location": location},
        headers={"Location": location},
    )


@router.post("/chats/{chat_id}/delete", status_code=status.HTTP_201_CREATED)
async def confirm_delete_chat(chat_id: str, tab: TabState = Depends(get_tab_state),
                              store: SessionStore = Depends(get_store)):
    """Open the "Delete Chat?" confirmation. Nothing is deleted until it is accepted."""
    email = _email(tab)
    modal = tab.modals.open(ConfirmModal("Delete Chat?", lambda: store.delete_chat(email, chat_id)))
    return modal.to_dict()


@router.post("/prompts/{prompt_id}/delete", status_code=status.HTTP_201_CREATED)
async def confirm_delete_prompt(prompt_id: str, tab: TabState = Depends(get_tab_state),
                                store: SessionStore = Depends(get_store)):
    email = _email(tab)
    modal = tab.modals.open(ConfirmModal("Delete Prompt?", lambda: store.delete_prompt(email, prompt_id)))
    return modal.to_dict()


@router.post("/prompts/new", status_code=status.HTTP_201_CREATED)
async def new_prompt(tab: TabState = Depends(get_tab_state), store: SessionStore = Depends(get_store)):
    """Open an empty prompt form; accepting it creates the template."""
    email = _email(tab)
    modal = tab.modals.open(PromptEditModal(lambda title, prompt: store.create_prompt(email, title, prompt)))
    return modal.to_dict()


@router.post("/prompts/{prompt_id}/edit", status_code=status.HTTP_201_CREATED)
async def edit_prompt(prompt_id: str, tab: TabState = Depends(get_tab_state),
                      store: SessionStore = Depends(get_store)):
    """Open the prompt form filled with the saved template."""
    email = _email(tab)
    try:
        template = await run_in_threadpool(store.get_prompt, email, prompt_id)
    except DocumentNotFound as e:
        raise not_found(e)

    modal = tab.modals.open(PromptEditModal(
        lambda title, prompt: store.update_prompt(email, prompt_id, title=title, prompt=prompt),
        title=template.title,
        prompt=template.prompt,
    ))
    return modal.to_dict()


@router.patch("/modals/{modal_id}")
async def edit_modal(modal_id: str, body: PromptModalEdit, tab: TabState = Depends(get_tab_state)):
    try:
        modal = tab.modals.get(modal_id)
    except ModalNotFound as e:
        raise not_found(e)
    if not isinstance(modal, PromptEditModal):
        raise not_found(ModalNotFound(modal_id))
    modal.edit(title=body.title, prompt=body.prompt)
    return modal.to_dict()


@router.post("/modals/{modal_id}/{action}")
async def resolve_modal(modal_id: str, action: ModalAction, tab: TabState = Depends(get_tab_state)):
    """Accept, cancel or dismiss (click outside) an open modal."""
    try:
        result = await run_in_threadpool(tab.modals.resolve, modal_id, action)
    except (ModalNotFound, DocumentNotFound) as e:
        raise not_found(e)

    body = {"modal": modal_id, "action": action}
    if hasattr(result, "model_dump"):
        body["result"] = result.model_dump(mode="json")
    return body
