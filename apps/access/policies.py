"""
Access Control Layer.

Pure decision functions over the current Membership Graph and Task Store
state. Nothing is cached between calls, so a membership change takes effect
on the very next request.

Every function either returns the resolved context or raises one of
GroupNotFound / TaskNotFound / AuthorizationError. Inactive rows are
indistinguishable from absent ones.
"""
from dataclasses import dataclass
from typing import FrozenSet, Optional

from apps.core.exceptions import AuthorizationError, GroupNotFound, TaskNotFound, ValidationError
from apps.groups.models import Group, GroupMember, MemberRole
from apps.identity.dtos import Principal
from apps.tasks.models import Task

TASK_FIELDS: FrozenSet[str] = frozenset({
    'title', 'description', 'start_time', 'end_time', 'priority', 'status', 'assigned_to',
})
ASSIGNEE_FIELDS: FrozenSet[str] = TASK_FIELDS - {'assigned_to'}


@dataclass(frozen=True)
class GroupAccess:
    group: Group
    role: str
    is_admin: bool


# =============================================================================
# Groups
# =============================================================================

def get_active_group(group_id: int) -> Group:
    group = Group.objects.filter(id=group_id, is_active=True).first()
    if group is None:
        raise GroupNotFound()
    return group


def membership_role(group: Group, user_id: int) -> Optional[str]:
    """admin for the owning user, the stored edge role for members, else None."""
    if group.admin_id == user_id:
        return MemberRole.ADMIN
    edge = GroupMember.objects.filter(group_id=group.id, user_id=user_id).only('role').first()
    return edge.role if edge else None


def authorize_group_access(principal: Principal, group_id: int) -> GroupAccess:
    group = get_active_group(group_id)
    role = membership_role(group, principal.id)
    if role is None:
        raise AuthorizationError("Access denied. You are not a member of this group.")
    return GroupAccess(group=group, role=role, is_admin=group.admin_id == principal.id)


def authorize_group_admin(principal: Principal, group_id: int) -> Group:
    """Only the owning admin may administer a group."""
    access = authorize_group_access(principal, group_id)
    if not access.is_admin:
        raise AuthorizationError("Only group admin can perform this action")
    return access.group


def ensure_group_member(group: Group, user_id: int) -> None:
    if membership_role(group, user_id) is None:
        raise ValidationError.for_field('assigned_to', "Assigned user is not a member of this group")


# =============================================================================
# Tasks
# =============================================================================

def is_group_admin_of(principal: Principal, task: Task) -> bool:
    """Group-admin privileges lapse once the group is soft-deleted."""
    group = task.group
    return group is not None and group.is_active and group.admin_id == principal.id


def authorize_task_access(principal: Principal, task_id: int) -> Task:
    task = Task.objects.select_related('group').filter(id=task_id, is_active=True).first()
    if task is None:
        raise TaskNotFound()

    if principal.id in (task.created_by_id, task.assigned_to_id) or is_group_admin_of(principal, task):
        return task

    raise AuthorizationError("Access denied to this task")


def authorize_task_mutation(principal: Principal, task: Task) -> FrozenSet[str]:
    """
    Fields the principal may change on this task.

    Creator and group admin may change everything; the assignee everything
    except the assignment itself.
    """
    if task.created_by_id == principal.id or is_group_admin_of(principal, task):
        return TASK_FIELDS
    if task.assigned_to_id == principal.id:
        return ASSIGNEE_FIELDS
    return frozenset()


def can_delete_task(principal: Principal, task: Task) -> bool:
    return task.created_by_id == principal.id or is_group_admin_of(principal, task)
