"""
API Schemas for Identity app.
"""
import re
from typing import Optional

from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import validate_email
from ninja import Field, Schema
from pydantic import field_validator

from .models import UserType

PASSWORD_PATTERN = re.compile(r'^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])')
PHONE_PATTERN = re.compile(r'^\+?[1-9]\d{1,14}$')


def _check_email(value: str) -> str:
    value = value.strip().lower()
    try:
        validate_email(value)
    except DjangoValidationError:
        raise ValueError("Please provide a valid email address")
    return value


def _check_password(value: str) -> str:
    if not PASSWORD_PATTERN.match(value):
        raise ValueError(
            "Password must contain at least one uppercase letter, one lowercase letter, "
            "one number, and one special character"
        )
    return value


def _check_phone(value: Optional[str]) -> Optional[str]:
    if value in (None, ''):
        return None
    value = re.sub(r'[\s\-()]', '', value)
    if not PHONE_PATTERN.match(value):
        raise ValueError("Please provide a valid phone number")
    return value


# =============================================================================
# Request Schemas
# =============================================================================

class RegisterIn(Schema):
    email: str
    password: str = Field(..., min_length=8)
    first_name: str = Field(..., min_length=2, max_length=50)
    last_name: str = Field(..., min_length=2, max_length=50)
    phone_number: Optional[str] = None
    user_type: str = UserType.INDIVIDUAL

    @field_validator('email')
    @classmethod
    def valid_email(cls, value):
        return _check_email(value)

    @field_validator('password')
    @classmethod
    def strong_password(cls, value):
        return _check_password(value)

    @field_validator('phone_number')
    @classmethod
    def valid_phone(cls, value):
        return _check_phone(value)

    @field_validator('first_name', 'last_name', mode='before')
    @classmethod
    def strip_names(cls, value):
        return value.strip() if isinstance(value, str) else value


class LoginIn(Schema):
    email: str
    password: str = Field(..., min_length=1)

    @field_validator('email')
    @classmethod
    def valid_email(cls, value):
        return _check_email(value)


class TokenIn(Schema):
    token: str = ""


class RefreshIn(Schema):
    refresh_token: Optional[str] = None
    token: Optional[str] = None


class ChangePasswordIn(Schema):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8)

    @field_validator('new_password')
    @classmethod
    def strong_password(cls, value):
        return _check_password(value)


class ProfileUpdateIn(Schema):
    first_name: Optional[str] = Field(None, min_length=2, max_length=50)
    last_name: Optional[str] = Field(None, min_length=2, max_length=50)
    phone_number: Optional[str] = None

    @field_validator('phone_number')
    @classmethod
    def valid_phone(cls, value):
        return _check_phone(value)


class NotificationSettingsIn(Schema):
    notification_whatsapp: Optional[bool] = None
    notification_email: Optional[bool] = None
    notification_frequency: Optional[int] = Field(None, ge=15, le=1440)
    timezone: Optional[str] = Field(None, max_length=50)
