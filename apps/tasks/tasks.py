from celery import shared_task
import logging

from . import services

logger = logging.getLogger(__name__)


@shared_task
def sweep_overdue_tasks():
    """
    Periodic overdue sweep (celery beat).
    Safe to run concurrently or repeatedly.
    """
    count = services.sweep_overdue_tasks()
    logger.info(f"sweep_overdue_tasks marked {count} tasks overdue")
    return count
