from typing import Dict, FrozenSet

from apps.core.exceptions import AuthorizationError
from .dtos import Principal
from .models import UserType


class Permissions:
    # Groups
    GROUPS_CREATE = "groups.create"

    # Tasks
    TASKS_CREATE = "tasks.create"

    # Superadmin
    USERS_VIEW_ALL = "identity.view_all_users"
    USERS_MANAGE = "identity.manage_users"


_BASE = frozenset({
    Permissions.TASKS_CREATE,
})

# Static Role -> Permission Mapping
ROLE_PERMISSIONS: Dict[str, FrozenSet[str]] = {
    UserType.INDIVIDUAL: _BASE,
    UserType.GROUP_ADMIN: _BASE | {
        Permissions.GROUPS_CREATE,
    },
    UserType.SUPERADMIN: _BASE | {
        Permissions.GROUPS_CREATE,
        Permissions.USERS_VIEW_ALL,
        Permissions.USERS_MANAGE,
    },
}


def get_permissions(user_type: str) -> FrozenSet[str]:
    return ROLE_PERMISSIONS.get(user_type, frozenset())


def require_permission(principal: Principal, permission: str, message: str = "Insufficient permissions") -> None:
    if permission not in get_permissions(principal.user_type):
        raise AuthorizationError(message)


def require_superadmin(principal: Principal, permission: str = Permissions.USERS_MANAGE) -> None:
    """User administration. Only the superadmin role holds these permissions."""
    require_permission(principal, permission, "Super admin access required")
