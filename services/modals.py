"""Modal dialogs: delete confirmation and the prompt template form."""

import logging
import uuid
from typing import Any, Callable, Dict, Optional, Union

from models.prompt import PROMPT_TEMPLATE_TOKEN

logger = logging.getLogger(__name__)


class ModalNotFound(LookupError):
    pass


class ModalClosed(RuntimeError):
    pass


class ConfirmModal:
    """Accept runs the action once and closes; cancel or a click outside just closes."""

    kind = "confirm"

    def __init__(self, title: str, on_accept: Callable[[], Any]):
        self.id = uuid.uuid4().hex
        self.title = title
        self.on_accept = on_accept
        self.open = True

    def accept(self) -> Any:
        if not self.open:
            raise ModalClosed(self.id)
        result = self.on_accept()
        self.open = False
        return result

    def cancel(self) -> None:
        self.open = False

    def dismiss(self) -> None:
        self.open = False

    def to_dict(self) -> dict:
        return {"id": self.id, "kind": self.kind, "title": self.title, "open": self.open}


class PromptEditModal(ConfirmModal):
    """Form with a title and a body; accept hands both to the callback."""

    kind = "prompt"

    def __init__(self, on_accept: Callable[[str, str], Any], title: str = "", prompt: str = "",
                 heading: str = "Prompt Settings"):
        super().__init__(heading, lambda: on_accept(self.prompt_title, self.prompt_body))
        self.prompt_title = title or ""
        self.prompt_body = prompt or PROMPT_TEMPLATE_TOKEN

    def edit(self, title: Optional[str] = None, prompt: Optional[str] = None) -> None:
        if not self.open:
            raise ModalClosed(self.id)
        if title is not None:
            self.prompt_title = title
        if prompt is not None:
            self.prompt_body = prompt

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update({"prompt_title": self.prompt_title, "prompt_body": self.prompt_body})
        return data


Modal = Union[ConfirmModal, PromptEditModal]


class ModalStack:
    """Open modals of one tab"""

    def __init__(self):
        self._modals: Dict[str, Modal] = {}

    def open(self, modal: Modal) -> Modal:
        self._modals[modal.id] = modal
        logger.debug(f"Opened {modal.kind} modal {modal.id}")
        return modal

    def get(self, modal_id: str) -> Modal:
        modal = self._modals.get(modal_id)
        if modal is None or not modal.open:
            raise ModalNotFound(modal_id)
        return modal

    def resolve(self, modal_id: str, action: str) -> Any:
        """Apply ``accept``, ``cancel`` or ``dismiss`` and forget the modal."""
        modal = self.get(modal_id)
        try:
            return getattr(modal, action)()
        finally:
            if not modal.open:
                self._modals.pop(modal_id, None)

    def list_open(self) -> list:
        return [m.to_dict() for m in self._modals.values() if m.open]
