from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, Optional


class PromptSettings(BaseModel):
    """Generation parameters sent with every completion request"""
    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    temperature: float = Field(0.7, ge=0, le=2)
    top_p: float = Field(1.0, ge=0, le=1, alias="topP")
    frequency_penalty: float = Field(0.0, ge=-2, le=2, alias="frequencyPenalty")
    presence_penalty: float = Field(0.0, ge=-2, le=2, alias="presencePenalty")
    max_tokens: int = Field(1000, ge=1, alias="maxTokens")


class PromptSettingsUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    temperature: Optional[float] = Field(None, ge=0, le=2)
    top_p: Optional[float] = Field(None, ge=0, le=1, alias="topP")
    frequency_penalty: Optional[float] = Field(None, ge=-2, le=2, alias="frequencyPenalty")
    presence_penalty: Optional[float] = Field(None, ge=-2, le=2, alias="presencePenalty")
    max_tokens: Optional[int] = Field(None, ge=1, alias="maxTokens")


class CompletionRequest(BaseModel):
    """Body of the completion endpoint"""
    model_config = ConfigDict(populate_by_name=True)

    prompt: str = ""
    chat_id: str = Field("", alias="chatId")
    model: Optional[str] = None
    session: Dict[str, Any] = {}
    prompt_settings: PromptSettings = Field(default_factory=PromptSettings, alias="promptSettings")
