"""
API Schemas for Groups app.
"""
from typing import Literal, Optional

from ninja import Field, Schema
from pydantic import field_validator

RoleLiteral = Literal['admin', 'member']


class GroupCreateIn(Schema):
    name: str = Field(..., min_length=3, max_length=100)
    description: Optional[str] = Field(None, max_length=500)

    @field_validator('name', mode='before')
    @classmethod
    def strip_name(cls, value):
        return value.strip() if isinstance(value, str) else value


class GroupUpdateIn(Schema):
    name: Optional[str] = Field(None, min_length=3, max_length=100)
    description: Optional[str] = Field(None, max_length=500)


class AddMemberIn(Schema):
    email: str = Field(..., min_length=3, max_length=254)
    role: RoleLiteral = 'member'


class MemberRoleIn(Schema):
    role: RoleLiteral
