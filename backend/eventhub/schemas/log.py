"""Pydantic schema for admin log entries."""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from eventhub.models.log import LogKind


class LogOut(BaseModel):
    time: datetime
    kind: LogKind
    message: str
    session_id: Optional[str] = None
    user_id: Optional[str] = None
    email: Optional[str] = None
    group_id: Optional[str] = None
    event_id: Optional[int] = None
    success: Optional[bool] = None

    model_config = {"from_attributes": True}
