"""DTOs for Groups app."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass(frozen=True)
class GroupDTO:
    id: int
    name: str
    description: Optional[str]
    admin_id: int
    admin_name: str
    is_active: bool
    member_count: int
    user_role: Optional[str]
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class GroupMemberDTO:
    user_id: int
    email: str
    first_name: str
    last_name: str
    phone_number: Optional[str]
    role: str
    joined_at: datetime


@dataclass(frozen=True)
class GroupDetailDTO:
    group: GroupDTO
    members: List[GroupMemberDTO] = field(default_factory=list)
    task_statistics: dict = field(default_factory=dict)
    user_role: Optional[str] = None
    is_admin: bool = False
