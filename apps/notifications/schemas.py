"""
API Schemas for Notifications app.
"""
from typing import Optional

from ninja import Field, Schema



class TestNotificationIn(Schema):
    notification_type: str = 'whatsapp'
    message: Optional[str] = Field(None, max_length=1000)


class PreferencesIn(Schema):
    notification_whatsapp: Optional[bool] = None
    notification_email: Optional[bool] = None
    notification_frequency: Optional[int] = Field(None, ge=15, le=1440)
    timezone: Optional[str] = Field(None, max_length=50)


class DeliveryReceiptIn(Schema):
    notification_id: int
