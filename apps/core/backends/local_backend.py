"""
Local Job Backend - Synchronous execution for development and tests.

Handlers registered here are also what the SQS consumer in
lambda_handlers.py dispatches to.
"""

import uuid
import logging
from typing import Any, Dict
from apps.core.job_service import JobBackendInterface

logger = logging.getLogger(__name__)


# Job handler registry - maps job names to handler functions
JOB_HANDLERS = {}


def register_handler(job_name: str):
    """Decorator to register a job handler."""
    def decorator(func):
        JOB_HANDLERS[job_name] = func
        return func
    return decorator


class LocalJobBackend(JobBackendInterface):
    """
    Execute jobs synchronously in the calling process.

    Jobs run inside the request cycle, so they block the response.
    """

    def send_job(
        self,
        job_name: str,
        payload: Dict[str, Any],
        delay_seconds: int = 0,
    ) -> str:
        job_id = str(uuid.uuid4())

        logger.info(f"[LOCAL] Executing job {job_name} (id={job_id})")

        if delay_seconds > 0:
            logger.warning(f"[LOCAL] delay_seconds={delay_seconds} ignored in local backend")

        handler = JOB_HANDLERS.get(job_name)
        if handler:
            try:
                result = handler(**payload)
                logger.info(f"[LOCAL] Job {job_name} completed: {result}")
            except Exception as e:
                logger.exception(f"[LOCAL] Job {job_name} failed: {e}")
                raise
        else:
            logger.warning(f"[LOCAL] No handler registered for job: {job_name}")

        return job_id


# =============================================================================
# Job Handlers
# =============================================================================

@register_handler("sweep_overdue_tasks")
def handle_sweep_overdue_tasks():
    from apps.tasks import services
    count = services.sweep_overdue_tasks()
    return f"Marked {count} tasks overdue"


@register_handler("send_task_reminders")
def handle_send_task_reminders():
    from apps.notifications import reminder_service
    count = reminder_service.send_task_reminders()
    return f"Sent {count} reminders"


@register_handler("notify_task_assigned")
def handle_notify_task_assigned(task_id: int):
    from apps.notifications import reminder_service
    count = reminder_service.notify_task_assigned(int(task_id))
    return f"Dispatched {count} assignment notifications for task {task_id}"
