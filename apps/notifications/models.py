from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

MIN_FREQUENCY_MINUTES = 15
MAX_FREQUENCY_MINUTES = 1440


class NotificationType(models.TextChoices):
    WHATSAPP = 'whatsapp', 'WhatsApp'
    EMAIL = 'email', 'Email'
    SMS = 'sms', 'SMS'


class NotificationStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    SENT = 'sent', 'Sent'
    FAILED = 'failed', 'Failed'
    DELIVERED = 'delivered', 'Delivered'


class NotificationKind(models.TextChoices):
    GENERAL = 'general', 'General'
    ASSIGNED = 'assigned', 'Task assigned'
    REMINDER = 'reminder', 'Reminder'
    STARTING_SOON = 'starting_soon', 'Starting soon'
    OVERDUE = 'overdue', 'Overdue'


class NotificationLog(models.Model):
    """
    One row per outbound notification attempt.

    Created as pending, then flipped in place to sent/failed by the
    dispatcher and to delivered by a provider receipt.
    """
    task = models.ForeignKey(
        'tasks.Task',
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='notifications',
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='notifications',
    )
    notification_type = models.CharField(max_length=10, choices=NotificationType.choices)
    kind = models.CharField(max_length=20, choices=NotificationKind.choices, default=NotificationKind.GENERAL)
    message = models.TextField()
    status = models.CharField(
        max_length=10,
        choices=NotificationStatus.choices,
        default=NotificationStatus.PENDING,
    )
    sent_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)
    error_message = models.TextField(null=True, blank=True)
    provider_message_id = models.CharField(max_length=255, null=True, blank=True)
    retry_count = models.PositiveSmallIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'notification_logs'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['user'], name='idx_notification_logs_user_id'),
            models.Index(fields=['task'], name='idx_notification_logs_task_id'),
            models.Index(fields=['status'], name='idx_notification_logs_status'),
        ]

    def __str__(self):
        return f"{self.notification_type} to {self.user_id} ({self.status})"


class UserSettings(models.Model):
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='notification_settings',
    )
    notification_whatsapp = models.BooleanField(default=True)
    notification_email = models.BooleanField(default=True)
    notification_frequency = models.PositiveIntegerField(
        default=60,
        validators=[MinValueValidator(MIN_FREQUENCY_MINUTES), MaxValueValidator(MAX_FREQUENCY_MINUTES)],
        help_text="Minimum minutes between reminders for the same task",
    )
    timezone = models.CharField(max_length=50, default='UTC')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'user_settings'
        verbose_name_plural = 'user settings'

    def __str__(self):
        return f"Settings for {self.user_id}"

    def channel_enabled(self, notification_type: str) -> bool:
        return {
            NotificationType.WHATSAPP: self.notification_whatsapp,
            NotificationType.EMAIL: self.notification_email,
            NotificationType.SMS: True,  # no per-user SMS toggle
        }.get(notification_type, False)
