from pydantic import BaseModel, EmailStr
from typing import Optional
from datetime import datetime


# User as described by the identity provider
class SessionUser(BaseModel):
    email: EmailStr
    name: Optional[str] = None
    image: Optional[str] = None


# Shape handed to the front end and forwarded to the completion endpoint
class Session(BaseModel):
    user: SessionUser
    expires: Optional[datetime] = None


# For token payload
class TokenData(BaseModel):
    email: Optional[str] = None
    name: Optional[str] = None
    image: Optional[str] = None
    expires: Optional[datetime] = None
