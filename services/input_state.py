"""
Shared input state of one browser tab: the draft text, the generation
settings and the selected model. This is the single authoritative copy;
other components read it through the accessors and follow draft changes by
registering a listener.
"""

import logging
from typing import Any, Callable, List, Optional

from models.settings import PromptSettings

logger = logging.getLogger(__name__)

DraftListener = Callable[[str], None]


class InputState:

    def __init__(self, settings: Optional[PromptSettings] = None, model: str = ""):
        self._draft = ""
        self._settings = settings or PromptSettings()
        self._model = model
        self._listeners: List[DraftListener] = []

    # draft

    @property
    def draft(self) -> str:
        return self._draft

    def set_draft(self, value: str) -> None:
        if value == self._draft:
            return
        self._draft = value
        for listener in list(self._listeners):
            listener(value)

    def clear_draft(self) -> None:
        self.set_draft("")

    def on_draft_change(self, listener: DraftListener) -> Callable[[], None]:
        """Register ``listener``; returns a callable that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # settings

    @property
    def settings(self) -> PromptSettings:
        return self._settings

    def update_settings(self, **changes: Any) -> PromptSettings:
        """Merge ``changes`` into the settings.

        Raises pydantic's ValidationError for out-of-range values, leaving
        the current settings untouched.
        """
        merged = {**self._settings.model_dump(), **{k: v for k, v in changes.items() if v is not None}}
        self._settings = PromptSettings.model_validate(merged)
        logger.debug(f"Prompt settings now {self._settings.model_dump(by_alias=True)}")
        return self._settings

    # model

    @property
    def model(self) -> str:
        return self._model

    def set_model(self, model: str) -> None:
        self._model = model
