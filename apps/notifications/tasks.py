from celery import shared_task
import logging

from . import reminder_service

logger = logging.getLogger(__name__)


@shared_task
def send_task_reminders():
    """Periodic reminder pass (celery beat)."""
    count = reminder_service.send_task_reminders()
    logger.info(f"send_task_reminders dispatched {count} notifications")
    return count


@shared_task
def notify_task_assigned(task_id):
    return reminder_service.notify_task_assigned(int(task_id))
