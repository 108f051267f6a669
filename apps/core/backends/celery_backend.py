"""
Celery Job Backend - Async execution via Celery + Redis.

Usage:
    Set TASK_BACKEND=celery. Requires a broker and a running worker.
"""

import uuid
import logging
from typing import Any, Dict
from apps.core.job_service import JobBackendInterface

logger = logging.getLogger(__name__)


# Job name -> (Celery task path, positional payload keys)
CELERY_JOBS = {
    "sweep_overdue_tasks": ("apps.tasks.tasks.sweep_overdue_tasks", []),
    "send_task_reminders": ("apps.notifications.tasks.send_task_reminders", []),
    "notify_task_assigned": ("apps.notifications.tasks.notify_task_assigned", ["task_id"]),
}


def _get_celery_task(job_name: str):
    entry = CELERY_JOBS.get(job_name)
    if not entry:
        raise ValueError(f"No Celery task mapped for: {job_name}")

    from celery import current_app
    return current_app.tasks.get(entry[0])


class CeleryJobBackend(JobBackendInterface):
    """Execute jobs via Celery shared tasks."""

    def send_job(
        self,
        job_name: str,
        payload: Dict[str, Any],
        delay_seconds: int = 0,
    ) -> str:
        job_id = str(uuid.uuid4())

        logger.info(f"[CELERY] Queueing job {job_name} (id={job_id})")

        task = _get_celery_task(job_name)
        if task is None:
            logger.error(f"[CELERY] Task not registered: {job_name}")
            raise ValueError(f"Celery task not found: {job_name}")

        args = [payload.get(key) for key in CELERY_JOBS[job_name][1]]

        if delay_seconds > 0:
            task.apply_async(args=args, countdown=delay_seconds, task_id=job_id)
        else:
            task.apply_async(args=args, task_id=job_id)

        return job_id
