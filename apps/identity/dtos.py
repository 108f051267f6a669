"""DTOs for Identity app."""
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional


@dataclass(frozen=True)
class Principal:
    """The authenticated user making a request."""
    id: int
    email: str
    user_type: str


@dataclass(frozen=True)
class UserDTO:
    id: int
    email: str
    first_name: str
    last_name: str
    phone_number: Optional[str]
    user_type: str
    is_active: bool
    created_at: datetime


@dataclass(frozen=True)
class UserSummaryDTO:
    id: int
    email: str
    first_name: str
    last_name: str
    user_type: str


@dataclass(frozen=True)
class AuthResultDTO:
    user: UserDTO
    token: str
    refresh_token: str


@dataclass(frozen=True)
class ProfileGroupDTO:
    id: int
    name: str
    description: Optional[str]
    user_role: str
    member_count: int


@dataclass(frozen=True)
class ProfileDTO:
    user: UserDTO
    settings: dict
    groups: List[ProfileGroupDTO]
    task_statistics: dict
