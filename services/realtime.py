"""
In-process live subscriptions.

Views subscribe to a key (a chat's message list, a user's chat list) and
receive the full ordered snapshot after every write to it. Writes happen in
the threadpool, so ``publish`` hands snapshots to each subscriber's loop
with ``call_soon_threadsafe``.
"""

import asyncio
import logging
import threading
from collections import defaultdict
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Set, Tuple

logger = logging.getLogger(__name__)


def messages_key(email: str, chat_id: str) -> str:
    return f"users/{email}/chats/{chat_id}/messages"


def chats_key(email: str) -> str:
    return f"users/{email}/chats"


def prompts_key(email: str) -> str:
    return f"users/{email}/prompt"


class MessageHub:
    """Fan-out of snapshots to live subscribers"""

    def __init__(self):
        self._lock = threading.Lock()
        self._subscribers: Dict[str, Set[Tuple[asyncio.AbstractEventLoop, asyncio.Queue]]] = defaultdict(set)

    @asynccontextmanager
    async def subscribe(self, key: str) -> AsyncIterator[asyncio.Queue]:
        entry = (asyncio.get_running_loop(), asyncio.Queue())
        with self._lock:
            self._subscribers[key].add(entry)
        logger.debug(f"Subscribed to {key}")
        try:
            yield entry[1]
        finally:
            with self._lock:
                self._subscribers[key].discard(entry)
                if not self._subscribers[key]:
                    del self._subscribers[key]
            logger.debug(f"Unsubscribed from {key}")

    def subscriber_count(self, key: str) -> int:
        with self._lock:
            return len(self._subscribers.get(key, ()))

    def publish(self, key: str, snapshot: Any) -> int:
        """Deliver ``snapshot`` to every subscriber of ``key``; returns how many were reached"""
        with self._lock:
            targets = list(self._subscribers.get(key, ()))

        delivered = 0
        for loop, queue in targets:
            try:
                loop.call_soon_threadsafe(queue.put_nowait, snapshot)
                delivered += 1
            except RuntimeError:
                # subscriber's loop is already closed
                logger.warning(f"Dropping subscriber of {key}: event loop closed")
                with self._lock:
                    self._subscribers.get(key, set()).discard((loop, queue))
        return delivered
