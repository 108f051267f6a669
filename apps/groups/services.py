"""
Membership Graph services.

The owning admin always holds an `admin` membership edge; that edge can
neither be removed nor demoted.
"""
import logging
from typing import List, Optional

from django.db import IntegrityError, transaction
from django.db.models import Count, Q

from apps.access.policies import authorize_group_access, authorize_group_admin
from apps.core.exceptions import ConflictError, NotAMember, UserNotFound, ValidationError
from apps.core.pagination import Page, PageRequest, paginate
from apps.identity.dtos import Principal
from apps.identity.models import User
from apps.identity.permissions import Permissions, require_permission
from apps.tasks.analytics_service import task_statistics
from apps.tasks.models import Task
from apps.tasks.services import soft_delete_group_tasks, to_task_dto
from .dtos import GroupDetailDTO, GroupDTO, GroupMemberDTO
from .models import Group, GroupMember, MemberRole

logger = logging.getLogger(__name__)


def _name_taken(admin_id: int, name: str, exclude_id: Optional[int] = None) -> bool:
    groups = Group.objects.filter(admin_id=admin_id, name__iexact=name, is_active=True)
    if exclude_id is not None:
        groups = groups.exclude(id=exclude_id)
    return groups.exists()


def to_group_dto(group: Group, user_role: Optional[str] = None, member_count: Optional[int] = None) -> GroupDTO:
    if member_count is None:
        member_count = getattr(group, 'member_count', None)
    if member_count is None:
        member_count = group.memberships.count()
    return GroupDTO(
        id=group.id,
        name=group.name,
        description=group.description,
        admin_id=group.admin_id,
        admin_name=group.admin.full_name,
        is_active=group.is_active,
        member_count=member_count,
        user_role=user_role,
        created_at=group.created_at,
        updated_at=group.updated_at,
    )


def to_member_dto(edge: GroupMember) -> GroupMemberDTO:
    return GroupMemberDTO(
        user_id=edge.user_id,
        email=edge.user.email,
        first_name=edge.user.first_name,
        last_name=edge.user.last_name,
        phone_number=edge.user.phone_number,
        role=edge.role,
        joined_at=edge.joined_at,
    )


def _members(group_id: int) -> List[GroupMemberDTO]:
    """Active members, admins first, then by name."""
    members = (
        GroupMember.objects
        .filter(group_id=group_id, user__is_active=True)
        .select_related('user')
        .order_by('role', 'user__first_name', 'user__last_name')
    )
    return [to_member_dto(m) for m in members]


# =============================================================================
# Groups
# =============================================================================

def create_group(principal: Principal, name: str, description: Optional[str] = None) -> GroupDTO:
    """Create a group; its creator becomes admin and first member."""
    require_permission(principal, Permissions.GROUPS_CREATE, "Only group admins can create groups")

    name = name.strip()
    if _name_taken(principal.id, name):
        raise ConflictError("A group with this name already exists")

    with transaction.atomic():
        group = Group.objects.create(name=name, description=description, admin_id=principal.id)
        GroupMember.objects.create(group=group, user_id=principal.id, role=MemberRole.ADMIN)

    logger.info(f"Group {group.id} created by user {principal.id}")
    return to_group_dto(Group.objects.select_related('admin').get(id=group.id), MemberRole.ADMIN, 1)


def list_groups(principal: Principal, page: PageRequest, search: Optional[str] = None) -> Page:
    groups = (
        Group.objects
        .filter(is_active=True)
        .filter(
            Q(admin_id=principal.id)
            | Q(id__in=GroupMember.objects.filter(user_id=principal.id).values('group_id'))
        )
        .select_related('admin')
        .annotate(member_count=Count('memberships', distinct=True))
        .order_by('-created_at', '-id')
    )
    if search:
        groups = groups.filter(name__icontains=search.strip())

    roles = dict(
        GroupMember.objects.filter(user_id=principal.id).values_list('group_id', 'role')
    )

    def transform(group: Group) -> GroupDTO:
        role = MemberRole.ADMIN if group.admin_id == principal.id else roles.get(group.id)
        return to_group_dto(group, role)

    return paginate(groups, page, transform=transform)


def get_group_detail(principal: Principal, group_id: int) -> GroupDetailDTO:
    access = authorize_group_access(principal, group_id)
    group = Group.objects.select_related('admin').get(id=access.group.id)

    tasks = Task.objects.filter(group_id=group.id, is_active=True)

    return GroupDetailDTO(
        group=to_group_dto(group, access.role),
        members=_members(group.id),
        task_statistics=task_statistics(tasks),
        user_role=access.role,
        is_admin=access.is_admin,
    )


def update_group(principal: Principal, group_id: int, data: dict) -> GroupDTO:
    group = authorize_group_admin(principal, group_id)

    changed = []
    if data.get('name') is not None:
        name = data['name'].strip()
        if _name_taken(group.admin_id, name, exclude_id=group.id):
            raise ConflictError("A group with this name already exists")
        group.name = name
        changed.append('name')
    if 'description' in data:
        group.description = data['description']
        changed.append('description')

    if not changed:
        raise ValidationError("No fields to update")

    group.save(update_fields=changed + ['updated_at'])
    return to_group_dto(Group.objects.select_related('admin').get(id=group.id), MemberRole.ADMIN)


def delete_group(principal: Principal, group_id: int) -> int:
    """
    Soft-delete the group and every active task in it.
    Returns the number of tasks deactivated.
    """
    group = authorize_group_admin(principal, group_id)

    with transaction.atomic():
        group.is_active = False
        group.save(update_fields=['is_active', 'updated_at'])
        count = soft_delete_group_tasks(group.id, principal.id)

    logger.info(f"Group {group.id} deleted by user {principal.id}; {count} tasks deactivated")
    return count


def list_group_tasks(principal: Principal, group_id: int, page: PageRequest, status: Optional[str] = None) -> Page:
    access = authorize_group_access(principal, group_id)
    tasks = (
        Task.objects
        .filter(group_id=access.group.id, is_active=True)
        .select_related('created_by', 'assigned_to', 'group')
        .order_by('-created_at', '-id')
    )
    if status:
        tasks = tasks.filter(status=status)
    return paginate(tasks, page, transform=to_task_dto)


# =============================================================================
# Membership
# =============================================================================

def add_member(principal: Principal, group_id: int, email: str, role: str = MemberRole.MEMBER) -> GroupMemberDTO:
    group = authorize_group_admin(principal, group_id)
    if role not in MemberRole.values:
        raise ValidationError.for_field('role', "Role must be either admin or member")

    user = User.objects.filter(email=email.strip().lower(), is_active=True).first()
    if user is None:
        raise UserNotFound("User not found with this email")

    if user.id == group.admin_id or GroupMember.objects.filter(group_id=group.id, user_id=user.id).exists():
        raise ConflictError("User is already a member of this group")

    try:
        with transaction.atomic():
            edge = GroupMember.objects.create(group=group, user=user, role=role)
    except IntegrityError:
        raise ConflictError("User is already a member of this group")

    logger.info(f"User {user.id} added to group {group.id} as {role}")
    return to_member_dto(edge)


def update_member_role(principal: Principal, group_id: int, user_id: int, role: str) -> GroupMemberDTO:
    group = authorize_group_admin(principal, group_id)
    if role not in MemberRole.values:
        raise ValidationError.for_field('role', "Role must be either admin or member")
    if user_id == group.admin_id:
        raise ValidationError("Group admin role cannot be changed")

    edge = GroupMember.objects.select_related('user').filter(group_id=group.id, user_id=user_id).first()
    if edge is None:
        raise NotAMember()

    edge.role = role
    edge.save(update_fields=['role'])
    return to_member_dto(edge)


def remove_member(principal: Principal, group_id: int, user_id: int) -> None:
    group = authorize_group_admin(principal, group_id)
    if user_id == group.admin_id:
        raise ValidationError("Group admin cannot be removed from the group")

    deleted, _ = GroupMember.objects.filter(group_id=group.id, user_id=user_id).delete()
    if not deleted:
        raise NotAMember()

    logger.info(f"User {user_id} removed from group {group.id}")


def list_members(principal: Principal, group_id: int) -> List[GroupMemberDTO]:
    access = authorize_group_access(principal, group_id)
    return _members(access.group.id)
