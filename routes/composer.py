from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, Response, status
from starlette.concurrency import run_in_threadpool

from models.composer import DraftUpdate, KeyDown, ModelSelect, SendOutcome
from models.settings import PromptSettings, PromptSettingsUpdate
from routes.deps import get_store, get_tab_state, not_found
from services.composer import SendResult
from services.session_store import DocumentNotFound, SessionStore
from services.tabs import TabState

router = APIRouter(prefix="/composer", tags=["composer"])


def _outcome(result: SendResult, response: Response) -> SendOutcome:
    if result.sent:
        response.status_code = status.HTTP_202_ACCEPTED
    return SendOutcome(**asdict(result))


@router.get("/")
async def read_composer(tab: TabState = Depends(get_tab_state)):
    """Draft, settings, model, send/stop control and toasts of the calling tab."""
    return tab.snapshot()


@router.put("/draft")
async def update_draft(body: DraftUpdate, tab: TabState = Depends(get_tab_state)):
    tab.input_state.set_draft(body.text)
    return tab.snapshot()


@router.patch("/settings", response_model=PromptSettings)
async def update_settings(body: PromptSettingsUpdate, tab: TabState = Depends(get_tab_state)):
    """Change generation settings; out-of-range values are rejected with 422."""
    return tab.input_state.update_settings(**body.model_dump(exclude_none=True))


@router.put("/model")
async def select_model(body: ModelSelect, tab: TabState = Depends(get_tab_state)):
    tab.input_state.set_model(body.model)
    return {"model": tab.input_state.model}


@router.post("/keydown", response_model=SendOutcome)
async def keydown(body: KeyDown, response: Response, tab: TabState = Depends(get_tab_state)):
    """Ctrl+Enter sends the draft; other keys do nothing."""
    result = await tab.composer.handle_keydown(body.chat_id, body.key, body.ctrl)
    if result is None:
        return SendOutcome(sent=False)
    return _outcome(result, response)


@router.post("/stop")
async def stop(tab: TabState = Depends(get_tab_state)):
    """Stop the in-flight completion. The stored user message stays."""
    return {"stopped": tab.composer.stop()}


@router.post("/prompt/{prompt_id}/apply")
async def apply_prompt(prompt_id: str, tab: TabState = Depends(get_tab_state),
                       store: SessionStore = Depends(get_store)):
    """Copy a saved prompt template into the draft."""
    email = tab.composer.session.user.email
    try:
        template = await run_in_threadpool(store.get_prompt, email, prompt_id)
    except DocumentNotFound as e:
        raise not_found(e)
    tab.composer.apply_template(template.prompt)
    return tab.snapshot()


@router.delete("/notifications/{notification_id}")
async def dismiss_notification(notification_id: str, tab: TabState = Depends(get_tab_state)):
    if not tab.notifier.dismiss(notification_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    return {"dismissed": notification_id}


@router.post("/{chat_id}/submit", response_model=SendOutcome)
async def submit(chat_id: str, response: Response, tab: TabState = Depends(get_tab_state)):
    """Store the draft as a user message and ask the assistant to respond."""
    result = await tab.composer.submit(chat_id)
    return _outcome(result, response)
