"""
Notification Log and User Settings services.

dispatch() is best-effort: transport failures are written to the log row
as `failed` and never propagate to the caller.
"""
import logging
from collections import defaultdict
from datetime import timedelta
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from django.conf import settings
from django.db import transaction
from django.utils import timezone
from django.utils.crypto import constant_time_compare

from apps.core.exceptions import AuthenticationError, NotFoundError, ValidationError
from apps.core.pagination import Page, PageRequest, paginate
from apps.identity.dtos import Principal
from apps.identity.models import User
from .dtos import NotificationLogDTO, UserSettingsDTO
from .models import (
    MAX_FREQUENCY_MINUTES,
    MIN_FREQUENCY_MINUTES,
    NotificationKind,
    NotificationLog,
    NotificationStatus,
    NotificationType,
    UserSettings,
)
from .transports import get_transport

logger = logging.getLogger(__name__)

DEFAULT_TEST_MESSAGE = "This is a test notification from TaskHub"
STATS_WINDOW_DAYS = 30
SETTINGS_FIELDS = ('notification_whatsapp', 'notification_email', 'notification_frequency', 'timezone')


def to_log_dto(log: NotificationLog) -> NotificationLogDTO:
    return NotificationLogDTO(
        id=log.id,
        task_id=log.task_id,
        task_title=log.task.title if log.task_id else None,
        user_id=log.user_id,
        notification_type=log.notification_type,
        message=log.message,
        status=log.status,
        sent_at=log.sent_at,
        delivered_at=log.delivered_at,
        error_message=log.error_message,
        retry_count=log.retry_count,
        created_at=log.created_at,
    )


# =============================================================================
# User Settings
# =============================================================================

def get_or_create_settings(user_id: int) -> UserSettings:
    user_settings, _ = UserSettings.objects.get_or_create(user_id=user_id)
    return user_settings


def settings_to_dict(user_settings: UserSettings) -> dict:
    return {
        'notification_whatsapp': user_settings.notification_whatsapp,
        'notification_email': user_settings.notification_email,
        'notification_frequency': user_settings.notification_frequency,
        'timezone': user_settings.timezone,
    }


def get_preferences(principal: Principal) -> UserSettingsDTO:
    return UserSettingsDTO(**settings_to_dict(get_or_create_settings(principal.id)))


def update_preferences(principal: Principal, data: dict) -> UserSettingsDTO:
    changes = {k: v for k, v in data.items() if k in SETTINGS_FIELDS and v is not None}
    if not changes:
        raise ValidationError("No fields to update")

    frequency = changes.get('notification_frequency')
    if frequency is not None and not MIN_FREQUENCY_MINUTES <= frequency <= MAX_FREQUENCY_MINUTES:
        raise ValidationError.for_field(
            'notification_frequency',
            f"Notification frequency must be between {MIN_FREQUENCY_MINUTES} and {MAX_FREQUENCY_MINUTES} minutes",
        )

    if 'timezone' in changes:
        try:
            ZoneInfo(changes['timezone'])
        except (ZoneInfoNotFoundError, ValueError):
            raise ValidationError.for_field('timezone', f"Unknown timezone: {changes['timezone']}")

    user_settings = get_or_create_settings(principal.id)
    for key, value in changes.items():
        setattr(user_settings, key, value)
    user_settings.save(update_fields=list(changes) + ['updated_at'])
    return UserSettingsDTO(**settings_to_dict(user_settings))


# =============================================================================
# Dispatch
# =============================================================================

def recipient_for(user: User, notification_type: str) -> Optional[str]:
    if notification_type == NotificationType.EMAIL:
        return user.email or None
    return user.phone_number or None


def record_attempt(
    user: User,
    notification_type: str,
    message: str,
    task=None,
    kind: str = NotificationKind.GENERAL,
) -> NotificationLog:
    return NotificationLog.objects.create(
        user=user,
        task=task,
        notification_type=notification_type,
        kind=kind,
        message=message,
        status=NotificationStatus.PENDING,
    )


def dispatch(log: NotificationLog, subject: Optional[str] = None) -> NotificationLog:
    """Send a pending log entry and record the outcome on it."""
    recipient = recipient_for(log.user, log.notification_type)
    if recipient is None:
        result_error = f"No recipient address for {log.notification_type}"
        result = None
    else:
        result = get_transport(log.notification_type).send(recipient, log.message, subject=subject)
        result_error = result.error

    if result is not None and result.success:
        log.status = NotificationStatus.SENT
        log.sent_at = timezone.now()
        log.error_message = None
        log.provider_message_id = result.provider_id
    else:
        log.status = NotificationStatus.FAILED
        log.error_message = result_error or "Delivery failed"

    log.save(update_fields=['status', 'sent_at', 'error_message', 'provider_message_id'])
    logger.info(f"[NOTIFY] Log {log.id} ({log.notification_type}) -> {log.status}")
    return log


def notify(
    user: User,
    notification_type: str,
    message: str,
    task=None,
    subject: Optional[str] = None,
    kind: str = NotificationKind.GENERAL,
) -> Optional[NotificationLog]:
    """
    Record and dispatch one notification if the user has the channel
    enabled and an address for it. Returns None when skipped.
    """
    user_settings = get_or_create_settings(user.id)
    if not user_settings.channel_enabled(notification_type):
        return None
    if recipient_for(user, notification_type) is None:
        return None

    log = record_attempt(user, notification_type, message, task=task, kind=kind)
    return dispatch(log, subject=subject)


# =============================================================================
# Logs & Stats
# =============================================================================

def list_logs(
    principal: Principal,
    page: PageRequest,
    status: Optional[str] = None,
    notification_type: Optional[str] = None,
) -> Page:
    logs = NotificationLog.objects.filter(user_id=principal.id).select_related('task')
    if status:
        logs = logs.filter(status=status)
    if notification_type:
        logs = logs.filter(notification_type=notification_type)
    return paginate(logs.order_by('-created_at', '-id'), page, transform=to_log_dto)


def get_stats(principal: Principal) -> dict:
    logs = list(
        NotificationLog.objects
        .filter(user_id=principal.id)
        .values('notification_type', 'status', 'created_at', 'sent_at', 'delivered_at')
    )

    by_status = {status: 0 for status in NotificationStatus.values}
    by_type = {kind: 0 for kind in NotificationType.values}
    performance = defaultdict(lambda: {'total': 0, 'successful': 0, 'failed': 0, 'delivery_seconds': []})
    daily = defaultdict(lambda: defaultdict(int))
    since = timezone.now() - timedelta(days=STATS_WINDOW_DAYS)

    for row in logs:
        by_status[row['status']] += 1
        by_type[row['notification_type']] += 1

        bucket = performance[row['notification_type']]
        bucket['total'] += 1
        if row['status'] in (NotificationStatus.SENT, NotificationStatus.DELIVERED):
            bucket['successful'] += 1
        elif row['status'] == NotificationStatus.FAILED:
            bucket['failed'] += 1
        if row['sent_at'] and row['delivered_at']:
            bucket['delivery_seconds'].append((row['delivered_at'] - row['sent_at']).total_seconds())

        if row['created_at'] >= since:
            daily[row['created_at'].date().isoformat()][row['status']] += 1

    type_performance = []
    for kind, bucket in sorted(performance.items()):
        seconds = bucket.pop('delivery_seconds')
        type_performance.append({
            'notification_type': kind,
            **bucket,
            'success_rate': round(bucket['successful'] * 100.0 / bucket['total'], 2),
            'avg_delivery_seconds': round(sum(seconds) / len(seconds), 2) if seconds else None,
        })

    return {
        'overall': {'total': len(logs), 'by_status': by_status, 'by_type': by_type},
        'recent_activity': [
            {'date': day, **counts} for day, counts in sorted(daily.items(), reverse=True)
        ],
        'type_performance': type_performance,
    }


# =============================================================================
# Test send, Retry, Delivery receipts
# =============================================================================

def send_test(principal: Principal, notification_type: str, message: Optional[str] = None) -> NotificationLogDTO:
    if notification_type not in NotificationType.values:
        raise ValidationError.for_field(
            'notification_type', "Invalid notification type. Must be whatsapp, email, or sms"
        )

    user = User.objects.get(id=principal.id)
    user_settings = get_or_create_settings(user.id)
    if not user_settings.channel_enabled(notification_type):
        label = NotificationType(notification_type).label
        raise ValidationError(f"{label} notifications are disabled for your account")

    if recipient_for(user, notification_type) is None:
        if notification_type == NotificationType.EMAIL:
            raise ValidationError("Email address is required for email notifications")
        raise ValidationError("Phone number is required for WhatsApp/SMS notifications")

    log = record_attempt(user, notification_type, message or DEFAULT_TEST_MESSAGE)
    dispatch(log, subject="TaskHub test notification")
    return to_log_dto(log)


def retry_notification(principal: Principal, notification_id: int) -> NotificationLogDTO:
    """Manual retry of a failed notification, bounded by NOTIFICATION_MAX_RETRIES."""
    with transaction.atomic():
        log = (
            NotificationLog.objects.select_for_update()
            .filter(id=notification_id, user_id=principal.id)
            .first()
        )
        if log is None:
            raise NotFoundError("Notification not found")
        if log.status != NotificationStatus.FAILED:
            raise ValidationError("Only failed notifications can be retried")
        if log.retry_count >= settings.NOTIFICATION_MAX_RETRIES:
            raise ValidationError("Maximum retry attempts reached")

        log.retry_count += 1
        log.status = NotificationStatus.PENDING
        log.error_message = None
        log.save(update_fields=['retry_count', 'status', 'error_message'])

    log = NotificationLog.objects.select_related('user', 'task').get(id=log.id)
    dispatch(log)
    return to_log_dto(log)


def mark_delivered(notification_id: int, token: str) -> NotificationLogDTO:
    """Provider delivery receipt: sent -> delivered."""
    expected = settings.NOTIFICATION_WEBHOOK_TOKEN
    if not expected or not constant_time_compare(token or "", expected):
        raise AuthenticationError("Invalid webhook token")

    log = NotificationLog.objects.select_related('task').filter(id=notification_id).first()
    if log is None:
        raise NotFoundError("Notification not found")
    if log.status != NotificationStatus.SENT:
        raise ValidationError("Only sent notifications can be marked delivered")

    log.status = NotificationStatus.DELIVERED
    log.delivered_at = timezone.now()
    log.save(update_fields=['status', 'delivered_at'])
    return to_log_dto(log)
