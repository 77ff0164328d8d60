from pydantic import BaseModel
from typing import Literal, Optional
from datetime import datetime


class Message(BaseModel):
    id: str   # client-generated uuid4
    content: str
    role: Literal["user", "assistant"]
    created_at: Optional[datetime] = None   # assigned by the database server
    chat_id: Optional[str] = None


class Chat(BaseModel):
    id: str
    user_id: str   # owner email
    title: str = ""
    pinned: bool = False
    created_at: Optional[datetime] = None


class ChatUpdate(BaseModel):
    title: Optional[str] = None
    pinned: Optional[bool] = None
