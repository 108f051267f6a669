"""
Task Store and lifecycle.

Every mutation runs in one transaction that writes the Task row and exactly
one TaskUpdate row, so the audit trail always replays to the current status.
"""
import logging
from datetime import datetime, timezone as dt_timezone
from typing import List, Optional

from django.db import transaction
from django.db.models import Case, IntegerField, Q, Value, When
from django.utils import timezone

from apps.access.policies import (
    authorize_task_access,
    authorize_task_mutation,
    can_delete_task,
    ensure_group_member,
    get_active_group,
    membership_role,
)
from apps.core.exceptions import AuthorizationError, TaskNotFound, ValidationError
from apps.core.job_service import JobService
from apps.core.pagination import Page, PageRequest, paginate
from apps.identity.dtos import Principal
from apps.identity.models import User
from apps.identity.permissions import Permissions, require_permission
from apps.notifications import reminder_service
from .dtos import TaskDetailDTO, TaskDTO, TaskFilter, TaskPatch, TaskUpdateDTO
from .models import OPEN_STATUSES, Task, TaskPriority, TaskStatus, TaskUpdate

logger = logging.getLogger(__name__)

SORTABLE_FIELDS = ('created_at', 'start_time', 'end_time', 'priority', 'status', 'title')
REQUIRED_FIELDS = ('title', 'start_time', 'end_time', 'priority', 'status', 'assigned_to')
OVERDUE_NOTE = "Task marked overdue"

PRIORITY_RANK = Case(
    When(priority=TaskPriority.LOW, then=Value(0)),
    When(priority=TaskPriority.MEDIUM, then=Value(1)),
    When(priority=TaskPriority.HIGH, then=Value(2)),
    output_field=IntegerField(),
)


# =============================================================================
# Helpers
# =============================================================================

def _aware(value: Optional[datetime]) -> Optional[datetime]:
    """Naive datetimes are taken to be UTC."""
    if value is not None and timezone.is_naive(value):
        return timezone.make_aware(value, dt_timezone.utc)
    return value


def _validate_time_range(start_time: datetime, end_time: datetime) -> None:
    if end_time <= start_time:
        raise ValidationError.for_field('end_time', "End time must be after start time")


def _validate_choice(field: str, value: str, choices) -> None:
    if value not in choices.values:
        raise ValidationError.for_field(field, f"Invalid {field}: {value}")


def _resolve_assignee(user_id: int) -> User:
    user = User.objects.filter(id=user_id, is_active=True).first()
    if user is None:
        raise ValidationError.for_field('assigned_to', "Assigned user not found")
    return user


def _record(task: Task, user_id: int, old_status: Optional[str], new_status: Optional[str], notes: str) -> TaskUpdate:
    return TaskUpdate.objects.create(
        task=task,
        user_id=user_id,
        old_status=old_status,
        new_status=new_status,
        notes=notes,
    )


def _format_value(value) -> str:
    if value is None:
        return 'none'
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def _queue_assignment_notice(task_id: int) -> None:
    transaction.on_commit(lambda: JobService.notify_task_assigned(task_id))


def _task_queryset():
    return Task.objects.select_related('created_by', 'assigned_to', 'group')


def to_task_dto(task: Task) -> TaskDTO:
    return TaskDTO(
        id=task.id,
        title=task.title,
        description=task.description,
        start_time=task.start_time,
        end_time=task.end_time,
        priority=task.priority,
        status=task.status,
        created_by=task.created_by_id,
        created_by_name=task.created_by.full_name,
        assigned_to=task.assigned_to_id,
        assigned_to_name=task.assigned_to.full_name,
        assigned_to_email=task.assigned_to.email,
        group_id=task.group_id,
        group_name=task.group.name if task.group_id else None,
        is_active=task.is_active,
        created_at=task.created_at,
        updated_at=task.updated_at,
    )


def to_update_dto(update: TaskUpdate) -> TaskUpdateDTO:
    return TaskUpdateDTO(
        id=update.id,
        task_id=update.task_id,
        user_id=update.user_id,
        user_name=update.user.full_name,
        old_status=update.old_status,
        new_status=update.new_status,
        notes=update.notes,
        created_at=update.created_at,
    )


def get_task_dto(task_id: int) -> TaskDTO:
    return to_task_dto(_task_queryset().get(id=task_id))


# =============================================================================
# Create
# =============================================================================

def create_task(
    principal: Principal,
    title: str,
    start_time: datetime,
    end_time: datetime,
    description: Optional[str] = None,
    priority: str = TaskPriority.MEDIUM,
    assigned_to: Optional[int] = None,
    group_id: Optional[int] = None,
) -> TaskDTO:
    """
    Create a task and its seed audit row (None -> pending).

    Assigning to someone else is only possible inside a group, by the
    group's admin, and only to a member of that group.
    """
    require_permission(principal, Permissions.TASKS_CREATE)
    start_time, end_time = _aware(start_time), _aware(end_time)
    _validate_time_range(start_time, end_time)
    _validate_choice('priority', priority, TaskPriority)

    assignee_id = assigned_to or principal.id
    if assignee_id != principal.id:
        _resolve_assignee(assignee_id)

    group = None
    if group_id:
        group = get_active_group(group_id)
        if membership_role(group, principal.id) is None:
            raise AuthorizationError("You are not a member of this group")
        if assignee_id != principal.id:
            if group.admin_id != principal.id:
                raise AuthorizationError("Only group admin can assign tasks to other members")
            ensure_group_member(group, assignee_id)
    elif assignee_id != principal.id:
        raise AuthorizationError("Individual users can only assign tasks to themselves")

    with transaction.atomic():
        task = Task.objects.create(
            title=title.strip(),
            description=description,
            start_time=start_time,
            end_time=end_time,
            priority=priority,
            status=TaskStatus.PENDING,
            created_by_id=principal.id,
            assigned_to_id=assignee_id,
            group=group,
        )
        _record(task, principal.id, None, TaskStatus.PENDING, "Task created")
        if assignee_id != principal.id:
            _queue_assignment_notice(task.id)

    logger.info(f"Task {task.id} created by user {principal.id}")
    return get_task_dto(task.id)


# =============================================================================
# Read
# =============================================================================

def visible_tasks(user_id: int):
    """Active tasks the user created, is assigned, or can see through an active group."""
    in_group = Q(group__is_active=True) & (
        Q(group__admin_id=user_id) | Q(group__memberships__user_id=user_id)
    )
    return (
        Task.objects
        .filter(is_active=True)
        .filter(Q(created_by_id=user_id) | Q(assigned_to_id=user_id) | in_group)
        .distinct()
    )


def apply_filters(queryset, filters: TaskFilter):
    if filters.status:
        queryset = queryset.filter(status=filters.status)
    if filters.priority:
        queryset = queryset.filter(priority=filters.priority)
    if filters.start_date:
        queryset = queryset.filter(start_time__gte=_aware(filters.start_date))
    if filters.end_date:
        queryset = queryset.filter(end_time__lte=_aware(filters.end_date))
    if filters.assigned_to:
        queryset = queryset.filter(assigned_to_id=filters.assigned_to)
    if filters.group_id:
        queryset = queryset.filter(group_id=filters.group_id)
    if filters.search:
        queryset = queryset.filter(Q(title__icontains=filters.search) | Q(description__icontains=filters.search))

    sort_by = filters.sort_by if filters.sort_by in SORTABLE_FIELDS else 'created_at'
    descending = (filters.sort_order or 'desc').lower() != 'asc'
    if sort_by == 'priority':
        queryset = queryset.annotate(priority_rank=PRIORITY_RANK)
        sort_by = 'priority_rank'
    prefix = '-' if descending else ''
    return queryset.order_by(f"{prefix}{sort_by}", f"{prefix}id")


def list_tasks(principal: Principal, filters: TaskFilter, page: PageRequest) -> Page:
    queryset = apply_filters(visible_tasks(principal.id), filters)
    return paginate(queryset.select_related('created_by', 'assigned_to', 'group'), page, transform=to_task_dto)


def get_task_detail(principal: Principal, task_id: int) -> TaskDetailDTO:
    task = authorize_task_access(principal, task_id)
    updates = TaskUpdate.objects.filter(task_id=task.id).select_related('user').order_by('-created_at', '-id')
    return TaskDetailDTO(
        task=get_task_dto(task.id),
        updates=[to_update_dto(u) for u in updates],
    )


def list_task_updates(principal: Principal, task_id: int) -> List[TaskUpdateDTO]:
    """Audit trail in replay order, oldest first."""
    task = authorize_task_access(principal, task_id)
    return [to_update_dto(u) for u in TaskUpdate.objects.filter(task_id=task.id).select_related('user')]


# =============================================================================
# Update
# =============================================================================

def update_task(principal: Principal, task_id: int, patch: TaskPatch) -> TaskDTO:
    """
    Apply the supplied fields and append one audit row listing every change
    as "field: old → new". Either all fields apply or none do.
    """
    task = authorize_task_access(principal, task_id)
    if not patch.fields:
        raise ValidationError("No fields to update")

    denied = patch.fields - authorize_task_mutation(principal, task)
    if 'assigned_to' in denied:
        raise AuthorizationError("Only task creator or group admin can reassign tasks")
    if denied:
        raise AuthorizationError("You do not have permission to update this task")

    for name in REQUIRED_FIELDS:
        if name in patch.fields and getattr(patch, name) is None:
            raise ValidationError.for_field(name, f"{name} cannot be null")

    if 'priority' in patch.fields:
        _validate_choice('priority', patch.priority, TaskPriority)
    if 'status' in patch.fields:
        _validate_choice('status', patch.status, TaskStatus)

    values = {name: getattr(patch, name) for name in patch.fields}
    if 'title' in values:
        values['title'] = values['title'].strip()
    for name in ('start_time', 'end_time'):
        if name in values:
            values[name] = _aware(values[name])

    if 'start_time' in values or 'end_time' in values:
        _validate_time_range(values.get('start_time', task.start_time), values.get('end_time', task.end_time))

    reassigned = 'assigned_to' in values and values['assigned_to'] != task.assigned_to_id
    if reassigned:
        _resolve_assignee(values['assigned_to'])
        if task.group_id and task.group.is_active:
            ensure_group_member(task.group, values['assigned_to'])
        elif values['assigned_to'] != principal.id:
            raise AuthorizationError("Individual users can only assign tasks to themselves")

    with transaction.atomic():
        locked = _lock_active(task.id)
        old_status = locked.status

        changes = []
        for name, value in values.items():
            attr = 'assigned_to_id' if name == 'assigned_to' else name
            current = getattr(locked, attr)
            if current != value:
                changes.append(f"{name}: {_format_value(current)} → {_format_value(value)}")
                setattr(locked, attr, value)

        if not changes:
            return get_task_dto(locked.id)

        locked.save()
        _record(locked, principal.id, old_status, locked.status, ", ".join(changes))
        if reassigned and values['assigned_to'] != principal.id:
            _queue_assignment_notice(locked.id)

    logger.info(f"Task {task.id} updated by user {principal.id}: {len(changes)} field(s)")
    return get_task_dto(task.id)


def _lock_active(task_id: int) -> Task:
    """Row-lock an active task. A delete that committed since the access check is a 404."""
    locked = Task.objects.select_for_update().filter(id=task_id, is_active=True).first()
    if locked is None:
        raise TaskNotFound()
    return locked


def _transition(task_id: int, actor_id: int, new_status: str, notes: Optional[str]) -> Task:
    """Locked status change plus its audit row. Caller owns the transaction."""
    locked = _lock_active(task_id)
    old_status = locked.status
    locked.status = new_status
    locked.save(update_fields=['status', 'updated_at'])
    _record(locked, actor_id, old_status, new_status, notes or f"Status changed from {old_status} to {new_status}")
    return locked


def update_task_status(principal: Principal, task_id: int, new_status: str, notes: Optional[str] = None) -> TaskDTO:
    task = authorize_task_access(principal, task_id)
    if 'status' not in authorize_task_mutation(principal, task):
        raise AuthorizationError("You do not have permission to change this task's status")
    _validate_choice('status', new_status, TaskStatus)

    with transaction.atomic():
        _transition(task.id, principal.id, new_status, notes)

    logger.info(f"Task {task.id} status -> {new_status} by user {principal.id}")
    return get_task_dto(task.id)


# =============================================================================
# Delete
# =============================================================================

def delete_task(principal: Principal, task_id: int) -> None:
    task = authorize_task_access(principal, task_id)
    if not can_delete_task(principal, task):
        raise AuthorizationError("Only task creator or group admin can delete tasks")

    with transaction.atomic():
        locked = _lock_active(task.id)
        locked.is_active = False
        locked.save(update_fields=['is_active', 'updated_at'])
        _record(locked, principal.id, locked.status, None, "Task deleted")

    logger.info(f"Task {task.id} deleted by user {principal.id}")


def soft_delete_group_tasks(group_id: int, actor_id: int) -> int:
    """Deactivate every active task of a group. Caller owns the transaction."""
    count = 0
    for task in Task.objects.select_for_update().filter(group_id=group_id, is_active=True):
        task.is_active = False
        task.save(update_fields=['is_active', 'updated_at'])
        _record(task, actor_id, task.status, None, "Task deleted")
        count += 1
    return count


# =============================================================================
# Overdue sweep
# =============================================================================

def sweep_overdue_tasks(now: Optional[datetime] = None) -> int:
    """
    Move active pending/in-progress tasks whose end_time has passed to
    overdue, then notify their assignees.

    Idempotent: each candidate is re-checked under its row lock, so
    concurrent or repeated sweeps transition a task at most once.
    """
    now = now or timezone.now()
    candidates = list(
        Task.objects
        .filter(is_active=True, status__in=OPEN_STATUSES, end_time__lt=now)
        .values_list('id', flat=True)
    )

    transitioned = []
    for task_id in candidates:
        with transaction.atomic():
            task = (
                Task.objects.select_for_update()
                .filter(id=task_id, is_active=True, status__in=OPEN_STATUSES, end_time__lt=now)
                .first()
            )
            if task is None:
                continue
            _transition(task.id, task.created_by_id, TaskStatus.OVERDUE, OVERDUE_NOTE)
        transitioned.append(task_id)

    logger.info(f"[SWEEP] {len(transitioned)} of {len(candidates)} candidate tasks marked overdue")

    for task_id in transitioned:
        reminder_service.notify_task_overdue(task_id)

    return len(transitioned)
