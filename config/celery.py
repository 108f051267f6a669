"""
Celery configuration for TaskHub project.
"""
import os
from celery import Celery
from datetime import timedelta

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

app = Celery('config')
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()

# Celery Beat Schedule
app.conf.beat_schedule = {
    'sweep-overdue-tasks': {
        'task': 'apps.tasks.tasks.sweep_overdue_tasks',
        'schedule': timedelta(minutes=int(os.getenv('OVERDUE_SWEEP_MINUTES', '10'))),
    },
    'send-task-reminders': {
        'task': 'apps.notifications.tasks.send_task_reminders',
        'schedule': timedelta(minutes=int(os.getenv('REMINDER_SWEEP_MINUTES', '60'))),
    },
}
