"""DTOs for Tasks app."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass(frozen=True)
class TaskUpdateDTO:
    id: int
    task_id: int
    user_id: int
    user_name: str
    old_status: Optional[str]
    new_status: Optional[str]
    notes: Optional[str]
    created_at: datetime


@dataclass(frozen=True)
class TaskDTO:
    id: int
    title: str
    description: Optional[str]
    start_time: datetime
    end_time: datetime
    priority: str
    status: str
    created_by: int
    created_by_name: str
    assigned_to: int
    assigned_to_name: str
    assigned_to_email: str
    group_id: Optional[int]
    group_name: Optional[str]
    is_active: bool
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class TaskDetailDTO:
    task: TaskDTO
    updates: List[TaskUpdateDTO] = field(default_factory=list)


@dataclass(frozen=True)
class TaskPatch:
    """
    Partial update for a task. Only fields listed in `fields` are applied,
    which keeps "not supplied" distinct from "set to null".
    """
    fields: frozenset
    title: Optional[str] = None
    description: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    priority: Optional[str] = None
    status: Optional[str] = None
    assigned_to: Optional[int] = None

    @classmethod
    def from_dict(cls, data: dict) -> 'TaskPatch':
        allowed = {k: v for k, v in data.items() if k in cls.__dataclass_fields__ and k != 'fields'}
        return cls(fields=frozenset(allowed), **allowed)


@dataclass(frozen=True)
class TaskFilter:
    status: Optional[str] = None
    priority: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    assigned_to: Optional[int] = None
    group_id: Optional[int] = None
    search: Optional[str] = None
    sort_by: str = 'created_at'
    sort_order: str = 'desc'
