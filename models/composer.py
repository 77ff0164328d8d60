from pydantic import BaseModel, ConfigDict, Field
from typing import Literal, Optional


class DraftUpdate(BaseModel):
    text: str


class ModelSelect(BaseModel):
    model: str = Field(..., min_length=1)


class KeyDown(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    chat_id: str = Field(..., alias="chatId")
    key: str
    ctrl: bool = False


class SendOutcome(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    sent: bool
    message_id: Optional[str] = Field(None, alias="messageId")
    error: Optional[str] = None


class PromptModalEdit(BaseModel):
    title: Optional[str] = None
    prompt: Optional[str] = None


ModalAction = Literal["accept", "cancel", "dismiss"]
