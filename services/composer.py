"""
Message composer: turns the tab's draft into a stored user message and a
completion request.

Send lifecycle, in order:
    1. build the user message (fresh uuid4, content = trimmed draft)
    2. clear the shared draft, before the write is confirmed
    3. store the message (bounded retry with backoff)
    4. hand the prompt to the completion client

The completion client keeps its own copy of the input; the composer pushes
every draft change into it, never the other way round.
"""

import logging
import math
import uuid
from dataclasses import dataclass
from typing import Optional

from pymongo.errors import PyMongoError
from starlette.concurrency import run_in_threadpool

from models.chat import Message
from models.prompt import PROMPT_TEMPLATE_TOKEN
from models.user import Session
from services.completion_client import CompletionClient
from services.input_state import InputState
from services.notifications import Notifier
from services.session_store import DocumentNotFound, SessionStore
from utils.retry import retry_with_exponential_backoff

logger = logging.getLogger(__name__)

SUBMIT_KEY = "Enter"
INPUT_COLUMNS = 80


@dataclass
class SendResult:
    """Outcome of one submit"""
    sent: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


def rows_for(text: str, columns: int = INPUT_COLUMNS, max_rows: int = 10) -> int:
    """Rendered height of the input box, in rows, for ``text``."""
    rows = 0
    for line in text.split("\n"):
        rows += max(1, math.ceil(len(line) / columns))
    return min(max(rows, 1), max_rows)


class MessageComposer:

    def __init__(self, state: InputState, completion: CompletionClient, store: SessionStore,
                 session: Optional[Session], notifier: Notifier, max_retries: int = 2,
                 retry_delay: float = 0.5, notify_on_persist_failure: bool = True,
                 max_rows: int = 10):
        self.state = state
        self.completion = completion
        self.store = store
        self.session = session
        self.notifier = notifier
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.notify_on_persist_failure = notify_on_persist_failure
        self.max_rows = max_rows
        self.rows = 1

        self._unsubscribe = state.on_draft_change(self._on_draft_change)
        self.synchronize_draft()
        self.autosize()

    def _on_draft_change(self, _value: str) -> None:
        self.synchronize_draft()
        self.autosize()

    def synchronize_draft(self) -> None:
        """Bring the completion client's input in line with the shared draft."""
        if self.completion.input != self.state.draft:
            self.completion.set_input(self.state.draft)

    def autosize(self) -> None:
        self.rows = 1
        self.rows = rows_for(self.state.draft, max_rows=self.max_rows)

    async def submit(self, chat_id: str) -> SendResult:
        text = self.state.draft.strip()
        if not text:
            return SendResult(sent=False)
        if self.session is None:
            return SendResult(sent=False, error="Not signed in")

        email = self.session.user.email
        message = Message(id=str(uuid.uuid4()), content=text, role="user", chat_id=chat_id)

        self.state.clear_draft()

        try:
            await retry_with_exponential_backoff(
                lambda: run_in_threadpool(self.store.add_message, email, chat_id, message),
                max_retries=self.max_retries,
                initial_delay=self.retry_delay,
                exceptions=(PyMongoError,),
            )
        except (PyMongoError, DocumentNotFound) as e:
            logger.error(f"Message {message.id} could not be stored in chat {chat_id}: {e}")
            if self.notify_on_persist_failure:
                self.notifier.error(f"Your message could not be saved: {e}")
            return SendResult(sent=False, message_id=message.id, error=str(e))

        self.completion.submit(
            prompt=text,
            chat_id=chat_id,
            settings=self.state.settings,
            model=self.state.model,
            session=self.session,
        )
        return SendResult(sent=True, message_id=message.id)

    async def handle_keydown(self, chat_id: str, key: str, ctrl: bool = False) -> Optional[SendResult]:
        """Ctrl+Enter submits; every other key is left to the input box."""
        if ctrl and key == SUBMIT_KEY:
            return await self.submit(chat_id)
        return None

    def stop(self) -> bool:
        return self.completion.stop()

    def apply_template(self, template: str) -> str:
        """Load a prompt template into the draft, filling ``{{text}}`` with the current draft."""
        if PROMPT_TEMPLATE_TOKEN in template:
            draft = template.replace(PROMPT_TEMPLATE_TOKEN, self.state.draft)
        else:
            draft = template
        self.state.set_draft(draft)
        return draft

    def controls(self) -> dict:
        signed_in = self.session is not None
        if self.completion.is_loading:
            return {"control": "stop", "enabled": signed_in, "rows": self.rows}
        return {
            "control": "send",
            "enabled": signed_in and bool(self.state.draft.strip()),
            "rows": self.rows,
        }

    def close(self) -> None:
        self._unsubscribe()
        self.completion.stop()
