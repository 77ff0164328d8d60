"""
Client for the completion endpoint.

It mirrors the composer's draft in ``input``, runs one request at a time in
a background task and owns the loading, error and cancel state of that
request. Progress is reported through the tab's notifier.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

import httpx

from models.settings import PromptSettings
from models.user import Session
from services.notifications import Notifier

logger = logging.getLogger(__name__)

THINKING_TEXT = "Assistant is thinking..."
RESPONDED_TEXT = "Assistant has responded!"


class CompletionClient:

    def __init__(self, url: str, notifier: Notifier, token: str = "", timeout: float = 60.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.url = url
        self.notifier = notifier
        self.token = token
        self.timeout = timeout
        self.transport = transport

        self.input = ""
        self.is_loading = False
        self.last_error: Optional[str] = None
        self.last_response: Optional[Dict[str, Any]] = None
        self._task: Optional[asyncio.Task] = None
        self._notification_id: Optional[str] = None

    def set_input(self, value: str) -> None:
        self.input = value

    def build_payload(self, prompt: str, chat_id: str, settings: PromptSettings, model: str,
                      session: Session) -> Dict[str, Any]:
        return {
            "prompt": prompt,
            "chatId": chat_id,
            "model": model,
            "session": session.model_dump(mode="json"),
            "promptSettings": settings.model_dump(by_alias=True),
        }

    def submit(self, prompt: str, chat_id: str, settings: PromptSettings, model: str,
               session: Session) -> asyncio.Task:
        """Start the request in the background and return its task."""
        if self.is_running:
            logger.info("New completion requested while one is running, stopping the old one")
            self.stop()

        payload = self.build_payload(prompt, chat_id, settings, model, session)
        notification_id = self.notifier.loading(THINKING_TEXT)
        self._notification_id = notification_id

        self.is_loading = True
        self.last_error = None
        self._task = asyncio.create_task(self._post(payload, notification_id))
        return self._task

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _post(self, payload: Dict[str, Any], notification_id: str) -> None:
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.url, json=payload, headers=headers)
                response.raise_for_status()
                self.last_response = response.json()
            logger.info(f"Completion for chat {payload['chatId']} finished")
            self.notifier.success(RESPONDED_TEXT, notification_id)
        except asyncio.CancelledError:
            logger.info(f"Completion for chat {payload['chatId']} cancelled")
            self.notifier.dismiss(notification_id)
            raise
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Completion request failed: {e}")
            self.last_error = str(e)
            self.notifier.error(f"The assistant could not respond: {e}", notification_id)
        finally:
            # a replaced request must not clear the flag of the one that replaced it
            if self._task is asyncio.current_task():
                self.is_loading = False

    def stop(self) -> bool:
        """Cancel the in-flight request. Returns False when nothing was running."""
        if not self.is_running:
            return False
        self._task.cancel()
        self.notifier.dismiss(self._notification_id)
        self.is_loading = False
        return True

    async def wait(self) -> None:
        """Wait for the current request, whatever its outcome."""
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)
