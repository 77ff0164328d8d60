from pydantic import BaseModel
from typing import Optional
from datetime import datetime

DEFAULT_PROMPT_TITLE = "New Prompt"
PROMPT_TEMPLATE_TOKEN = "{{text}}"


class PromptTemplate(BaseModel):
    id: str
    user_id: str   # owner email
    title: str
    prompt: str
    created_at: Optional[datetime] = None


class PromptCreate(BaseModel):
    title: str = ""
    prompt: str = ""


class PromptUpdate(BaseModel):
    title: Optional[str] = None
    prompt: Optional[str] = None
