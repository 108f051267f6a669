"""DTOs for Notifications app."""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class NotificationLogDTO:
    id: int
    task_id: Optional[int]
    task_title: Optional[str]
    user_id: int
    notification_type: str
    message: str
    status: str
    sent_at: Optional[datetime]
    delivered_at: Optional[datetime]
    error_message: Optional[str]
    retry_count: int
    created_at: datetime


@dataclass(frozen=True)
class UserSettingsDTO:
    notification_whatsapp: bool
    notification_email: bool
    notification_frequency: int
    timezone: str
