"""
Analytics services for Tasks.
Provides status counts, the user dashboard and completion statistics.
"""
from datetime import timedelta

from django.db.models import Count, Q
from django.utils import timezone

from apps.identity.dtos import Principal
from .models import Task, TaskPriority, TaskStatus

UPCOMING_WINDOW_DAYS = 7
COMPLETION_WINDOW_DAYS = 30
RECENT_LIMIT = 10


def task_statistics(queryset) -> dict:
    """Counts per status over a task queryset."""
    aggregated = queryset.aggregate(
        total=Count('id', distinct=True),
        pending=Count('id', filter=Q(status=TaskStatus.PENDING), distinct=True),
        in_progress=Count('id', filter=Q(status=TaskStatus.IN_PROGRESS), distinct=True),
        completed=Count('id', filter=Q(status=TaskStatus.COMPLETED), distinct=True),
        overdue=Count('id', filter=Q(status=TaskStatus.OVERDUE), distinct=True),
    )
    return {key: value or 0 for key, value in aggregated.items()}


def priority_statistics(queryset) -> dict:
    counts = {
        row['priority']: row['count']
        for row in queryset.order_by().values('priority').annotate(count=Count('id', distinct=True))
    }
    return {priority: counts.get(priority, 0) for priority in TaskPriority.values}


def completion_statistics(queryset, days: int = COMPLETION_WINDOW_DAYS) -> dict:
    since = timezone.now() - timedelta(days=days)
    recent = queryset.filter(created_at__gte=since)
    total = recent.count()
    completed = recent.filter(status=TaskStatus.COMPLETED).count()
    return {
        'period_days': days,
        'total_tasks': total,
        'completed_tasks': completed,
        'completion_rate': round(completed * 100.0 / total, 2) if total else 0.0,
    }


def get_dashboard(principal: Principal) -> dict:
    from .services import to_task_dto, visible_tasks

    now = timezone.now()
    tasks = visible_tasks(principal.id)
    related = tasks.select_related('created_by', 'assigned_to', 'group')

    recent = related.order_by('-created_at', '-id')[:RECENT_LIMIT]
    upcoming = (
        related
        .filter(start_time__gte=now, start_time__lte=now + timedelta(days=UPCOMING_WINDOW_DAYS))
        .exclude(status=TaskStatus.COMPLETED)
        .order_by('start_time')
    )
    overdue = related.filter(
        Q(status=TaskStatus.OVERDUE)
        | Q(end_time__lt=now, status__in=(TaskStatus.PENDING, TaskStatus.IN_PROGRESS))
    ).order_by('end_time')

    return {
        'task_statistics': task_statistics(tasks),
        'recent_tasks': [to_task_dto(t) for t in recent],
        'upcoming_tasks': [to_task_dto(t) for t in upcoming],
        'overdue_tasks': [to_task_dto(t) for t in overdue],
        'priority_statistics': priority_statistics(tasks),
        'completion_statistics': completion_statistics(tasks),
    }
