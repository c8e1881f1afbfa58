from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field


class ActiveUser(BaseModel):
    """Entry in the in-memory active user store"""
    id: str
    name: str = "Anonymous User"
    email: str = "No email"
    current_page: Optional[str] = None
    session_start: datetime
    last_active: datetime
    is_online: bool = True


class Heartbeat(BaseModel):
    """Activity ping from the dashboard"""
    user_id: Optional[str] = Field(None, max_length=100)
    name: Optional[str] = Field(None, max_length=255)
    email: Optional[str] = Field(None, max_length=255)
    current_page: Optional[str] = Field(None, max_length=512)
