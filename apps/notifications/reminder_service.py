"""
Task-driven notifications: assignment notices, overdue notices and the
periodic reminder sweep.

Each function resolves the user's enabled channels and hands every message
to services.notify(), so delivery problems end up in the Notification Log
rather than in the caller.
"""
import logging
from datetime import datetime, timedelta
from typing import List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from django.utils import timezone

from apps.identity.models import User
from apps.tasks.models import Task, TaskStatus
from . import services
from .models import NotificationKind, NotificationLog, NotificationStatus, NotificationType

logger = logging.getLogger(__name__)

STARTING_SOON_WINDOW = timedelta(minutes=30)
REMINDER_CHANNELS = (NotificationType.WHATSAPP, NotificationType.EMAIL)

ASSIGNED_TEMPLATE = (
    "Hi {name}! You have been assigned a new task: \"{title}\". "
    "Priority: {priority}. Starts {start}, due {end}."
)
REMINDER_TEMPLATE = (
    "Hi {name}! Reminder: task \"{title}\" is in progress and due {end}."
)
STARTING_SOON_TEMPLATE = (
    "Hi {name}! Task \"{title}\" starts soon ({start}). Priority: {priority}."
)
OVERDUE_TEMPLATE = (
    "Hi {name}! Task \"{title}\" is now overdue. It was due {end}. "
    "Please update its status."
)


def recipient_zone(user: User):
    """The user's configured zone, or the server zone when unset or unknown."""
    name = services.get_or_create_settings(user.id).timezone
    try:
        return ZoneInfo(name) if name else timezone.get_current_timezone()
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"[NOTIFY] Unknown timezone {name!r} for user {user.id}")
        return timezone.get_current_timezone()


def _fmt(value: datetime, zone) -> str:
    return timezone.localtime(value, zone).strftime('%Y-%m-%d %H:%M %Z')


def render(template: str, task: Task, user: User) -> str:
    zone = recipient_zone(user)
    return template.format(
        name=user.first_name or user.email,
        title=task.title,
        priority=task.priority,
        start=_fmt(task.start_time, zone),
        end=_fmt(task.end_time, zone),
    )


def _notify_all_channels(user: User, task: Task, template: str, subject: str, kind: str) -> List[NotificationLog]:
    message = render(template, task, user)
    logs = []
    for channel in REMINDER_CHANNELS:
        log = services.notify(user, channel, message, task=task, subject=subject, kind=kind)
        if log is not None:
            logs.append(log)
    return logs


def _active_task(task_id: int) -> Optional[Task]:
    return Task.objects.select_related('assigned_to').filter(id=task_id, is_active=True).first()


def notify_task_assigned(task_id: int) -> int:
    task = _active_task(task_id)
    if task is None or not task.assigned_to.is_active:
        return 0
    return len(_notify_all_channels(
        task.assigned_to, task, ASSIGNED_TEMPLATE, f"New task: {task.title}", NotificationKind.ASSIGNED,
    ))


def notify_task_overdue(task_id: int) -> int:
    task = _active_task(task_id)
    if task is None or task.status != TaskStatus.OVERDUE or not task.assigned_to.is_active:
        return 0
    return len(_notify_all_channels(
        task.assigned_to, task, OVERDUE_TEMPLATE, f"Task overdue: {task.title}", NotificationKind.OVERDUE,
    ))


def _recently_notified(task: Task, channel: str, since: datetime) -> bool:
    return NotificationLog.objects.filter(
        task_id=task.id,
        user_id=task.assigned_to_id,
        notification_type=channel,
        kind=NotificationKind.REMINDER,
        status__in=(NotificationStatus.SENT, NotificationStatus.DELIVERED),
        created_at__gte=since,
    ).exists()


def _starting_soon_sent(task: Task, channel: str) -> bool:
    return NotificationLog.objects.filter(
        task_id=task.id,
        notification_type=channel,
        kind=NotificationKind.STARTING_SOON,
    ).exists()


def send_task_reminders(now: Optional[datetime] = None) -> int:
    """
    One pass of the reminder schedule.

    - In-progress tasks: a reminder per enabled channel, at most once per
      the assignee's notification_frequency.
    - Pending tasks starting within 30 minutes: one starting-soon message
      per channel, ever.
    """
    now = now or timezone.now()
    sent = 0

    in_progress = Task.objects.select_related('assigned_to').filter(
        is_active=True,
        status=TaskStatus.IN_PROGRESS,
        end_time__gt=now,
        assigned_to__is_active=True,
    )
    for task in in_progress:
        frequency = services.get_or_create_settings(task.assigned_to_id).notification_frequency
        since = now - timedelta(minutes=frequency)
        message = render(REMINDER_TEMPLATE, task, task.assigned_to)
        for channel in REMINDER_CHANNELS:
            if _recently_notified(task, channel, since):
                continue
            log = services.notify(
                task.assigned_to, channel, message,
                task=task, subject=f"Reminder: {task.title}", kind=NotificationKind.REMINDER,
            )
            if log:
                sent += 1

    starting_soon = Task.objects.select_related('assigned_to').filter(
        is_active=True,
        status=TaskStatus.PENDING,
        start_time__gt=now,
        start_time__lte=now + STARTING_SOON_WINDOW,
        assigned_to__is_active=True,
    )
    for task in starting_soon:
        message = render(STARTING_SOON_TEMPLATE, task, task.assigned_to)
        for channel in REMINDER_CHANNELS:
            if _starting_soon_sent(task, channel):
                continue
            log = services.notify(
                task.assigned_to, channel, message,
                task=task, subject=f"Starting soon: {task.title}", kind=NotificationKind.STARTING_SOON,
            )
            if log:
                sent += 1

    logger.info(f"[NOTIFY] Reminder pass dispatched {sent} notifications")
    return sent
