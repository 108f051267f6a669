"""
API Schemas for Tasks app.
"""
from datetime import datetime
from typing import Literal, Optional

from ninja import Field, Schema
from pydantic import field_validator, model_validator

PriorityLiteral = Literal['low', 'medium', 'high']
StatusLiteral = Literal['pending', 'in_progress', 'completed', 'overdue']


class TaskCreateIn(Schema):
    title: str = Field(..., min_length=3, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    start_time: datetime
    end_time: datetime
    priority: PriorityLiteral = 'medium'
    assigned_to: Optional[int] = Field(None, ge=1)
    group_id: Optional[int] = Field(None, ge=1)

    @field_validator('title', mode='before')
    @classmethod
    def strip_title(cls, value):
        return value.strip() if isinstance(value, str) else value

    @model_validator(mode='after')
    def end_after_start(self):
        if self.end_time <= self.start_time:
            raise ValueError("End time must be after start time")
        return self


class TaskUpdateIn(Schema):
    """All fields optional; only supplied fields are applied."""
    title: Optional[str] = Field(None, min_length=3, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    priority: Optional[PriorityLiteral] = None
    status: Optional[StatusLiteral] = None
    assigned_to: Optional[int] = Field(None, ge=1)


class TaskStatusIn(Schema):
    status: StatusLiteral
    notes: Optional[str] = Field(None, max_length=500)


class TaskFilterIn(Schema):
    status: Optional[StatusLiteral] = None
    priority: Optional[PriorityLiteral] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    assigned_to: Optional[int] = None
    group_id: Optional[int] = None
    search: Optional[str] = None
    sort_by: str = 'created_at'
    sort_order: str = 'desc'
    page: int = 1
    limit: int = 10
