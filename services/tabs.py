"""
Per-tab UI state, owned by the application for its lifetime.

Each (user email, tab id) gets its own input state, notifier, completion
client, composer and open modals. Everything a user owns is torn down when
their session ends: on logout, or on the first registry access after the
session expired. A user with too many tabs loses the least recently used one.
"""

import itertools
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Tuple

from config.settings import Settings
from models.user import Session
from services.completion_client import CompletionClient
from services.composer import MessageComposer
from services.input_state import InputState
from services.modals import ModalStack
from services.notifications import Notifier
from services.session_store import SessionStore

logger = logging.getLogger(__name__)

DEFAULT_TAB = "default"

CompletionFactory = Callable[[Notifier, str], CompletionClient]


def default_completion_factory(notifier: Notifier, token: str) -> CompletionClient:
    return CompletionClient(
        Settings.COMPLETION_URL,
        notifier,
        token=token,
        timeout=Settings.COMPLETION_TIMEOUT,
    )


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass
class TabState:
    input_state: InputState
    notifier: Notifier
    completion: CompletionClient
    composer: MessageComposer
    modals: ModalStack
    expires: Optional[datetime] = None
    last_used: int = 0

    def snapshot(self) -> dict:
        return {
            "draft": self.input_state.draft,
            "settings": self.input_state.settings.model_dump(by_alias=True),
            "model": self.input_state.model,
            "controls": self.composer.controls(),
            "is_loading": self.completion.is_loading,
            "last_error": self.completion.last_error,
            "notifications": [n.to_dict() for n in self.notifier.items()],
            "modals": self.modals.list_open(),
        }


class TabRegistry:

    def __init__(self, store: SessionStore, completion_factory: Optional[CompletionFactory] = None,
                 max_tabs_per_user: Optional[int] = None,
                 clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)):
        self.store = store
        self.completion_factory = completion_factory or default_completion_factory
        self.max_tabs_per_user = max_tabs_per_user or Settings.MAX_TABS_PER_USER
        self.clock = clock
        self._lock = threading.Lock()
        self._tabs: Dict[Tuple[str, str], TabState] = {}
        self._uses = itertools.count()

    def get(self, session: Session, tab_id: str = DEFAULT_TAB, token: str = "") -> TabState:
        key = (session.user.email, tab_id or DEFAULT_TAB)
        with self._lock:
            closing = self._pop_expired()
            tab = self._tabs.get(key)
            if tab is None:
                tab = self._create(session, token)
                self._tabs[key] = tab
                logger.info(f"Opened tab state {key[1]} for {key[0]}")
            tab.expires = _as_utc(session.expires)
            tab.last_used = next(self._uses)
            closing += self._pop_over_limit(key)

        self._close(closing)

        # tokens get refreshed by the identity provider
        tab.composer.session = session
        if token:
            tab.completion.token = token
        return tab

    def _pop_expired(self) -> List[TabState]:
        now = self.clock()
        keys = [key for key, tab in self._tabs.items() if tab.expires is not None and tab.expires <= now]
        for key in keys:
            logger.info(f"Session of {key[0]} expired, closing tab state {key[1]}")
        return [self._tabs.pop(key) for key in keys]

    def _pop_over_limit(self, current: Tuple[str, str]) -> List[TabState]:
        """Drop the least recently used tabs of ``current``'s user beyond the limit."""
        keys = sorted(
            (key for key in self._tabs if key[0] == current[0] and key != current),
            key=lambda key: self._tabs[key].last_used,
        )
        excess = len(keys) + 1 - self.max_tabs_per_user
        if excess <= 0:
            return []
        for key in keys[:excess]:
            logger.info(f"Tab limit reached for {key[0]}, closing tab state {key[1]}")
        return [self._tabs.pop(key) for key in keys[:excess]]

    @staticmethod
    def _close(tabs: List[TabState]) -> None:
        for tab in tabs:
            tab.composer.close()

    def count(self, email: Optional[str] = None) -> int:
        with self._lock:
            return sum(1 for key in self._tabs if email is None or key[0] == email)

    def _create(self, session: Session, token: str) -> TabState:
        notifier = Notifier()
        input_state = InputState(model=Settings.DEFAULT_MODEL)
        completion = self.completion_factory(notifier, token)
        composer = MessageComposer(
            input_state,
            completion,
            self.store,
            session,
            notifier,
            max_retries=Settings.PERSIST_MAX_RETRIES,
            retry_delay=Settings.PERSIST_RETRY_DELAY,
            notify_on_persist_failure=Settings.NOTIFY_ON_PERSIST_FAILURE,
            max_rows=Settings.MAX_INPUT_ROWS,
        )
        return TabState(input_state, notifier, completion, composer, ModalStack())

    def drop_user(self, email: str) -> int:
        """Close every tab of ``email``; in-flight completions are cancelled."""
        with self._lock:
            keys = [key for key in self._tabs if key[0] == email]
            tabs = [self._tabs.pop(key) for key in keys]

        self._close(tabs)
        if tabs:
            logger.info(f"Closed {len(tabs)} tab(s) for {email}")
        return len(tabs)

    def close_all(self) -> None:
        with self._lock:
            tabs = list(self._tabs.values())
            self._tabs.clear()
        self._close(tabs)
