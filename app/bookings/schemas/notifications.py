from datetime import datetime
from typing import Any, Dict, List
from pydantic import BaseModel, ConfigDict


class NotificationResponse(BaseModel):
    id: int
    email: str
    type: str
    payload: Dict[str, Any]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class NotificationListResponse(BaseModel):
    notifications: List[NotificationResponse]
