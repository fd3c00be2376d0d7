from datetime import datetime
from typing import Literal

from pydantic import BaseModel

InterestType = Literal["yes", "no", "maybe"]


class EventInterestRequest(BaseModel):
    event_id: str | None = None
    interest_type: str | None = None


class EventInterestOut(BaseModel):
    id: str
    event_id: str
    user_id: str
    interest_type: InterestType
    created_at: datetime


class EventInterestResponse(BaseModel):
    success: bool = True
    message: str = "Interest marked successfully"
    data: EventInterestOut
