from django.contrib import admin
from .models import NotificationLog, UserSettings


@admin.register(NotificationLog)
class NotificationLogAdmin(admin.ModelAdmin):
    list_display = ['id', 'user', 'task', 'notification_type', 'kind', 'status', 'retry_count', 'sent_at', 'created_at']
    list_filter = ['notification_type', 'kind', 'status']
    search_fields = ['message', 'user__email']
    readonly_fields = ['created_at', 'sent_at', 'delivered_at', 'provider_message_id']
    raw_id_fields = ['user', 'task']


@admin.register(UserSettings)
class UserSettingsAdmin(admin.ModelAdmin):
    list_display = ['user', 'notification_whatsapp', 'notification_email', 'notification_frequency', 'timezone']
    list_filter = ['notification_whatsapp', 'notification_email']
    search_fields = ['user__email']
    raw_id_fields = ['user']
