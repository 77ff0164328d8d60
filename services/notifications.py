"""Transient toast notifications shown for a tab."""

import logging
import uuid
from collections import OrderedDict
from dataclasses import asdict, dataclass
from typing import List, Literal, Optional

logger = logging.getLogger(__name__)

Kind = Literal["loading", "success", "error"]


@dataclass
class Notification:
    id: str
    kind: Kind
    text: str
    dismissible: bool = True

    def to_dict(self) -> dict:
        return asdict(self)


class Notifier:
    """Keeps the newest ``limit`` notifications of one tab.

    Passing an existing ``notification_id`` replaces that toast in place,
    the way a loading toast turns into a success toast.
    """

    def __init__(self, limit: int = 20):
        self.limit = limit
        self._items: "OrderedDict[str, Notification]" = OrderedDict()

    def _put(self, kind: Kind, text: str, notification_id: Optional[str], dismissible: bool) -> str:
        notification_id = notification_id or uuid.uuid4().hex
        self._items[notification_id] = Notification(notification_id, kind, text, dismissible)
        while len(self._items) > self.limit:
            self._items.popitem(last=False)
        return notification_id

    def loading(self, text: str, notification_id: Optional[str] = None) -> str:
        return self._put("loading", text, notification_id, dismissible=False)

    def success(self, text: str, notification_id: Optional[str] = None) -> str:
        return self._put("success", text, notification_id, dismissible=True)

    def error(self, text: str, notification_id: Optional[str] = None) -> str:
        logger.debug(f"Error notification: {text}")
        return self._put("error", text, notification_id, dismissible=True)

    def dismiss(self, notification_id: str) -> bool:
        return self._items.pop(notification_id, None) is not None

    def items(self) -> List[Notification]:
        return list(self._items.values())
