"""
JobService - Abstraction layer for background job execution.

The backend is chosen by the TASK_BACKEND setting:

    TASK_BACKEND=local   # Synchronous execution (development, tests)
    TASK_BACKEND=lambda  # AWS Lambda + SQS
    TASK_BACKEND=celery  # Celery + Redis

Usage:
    from apps.core.job_service import JobService

    JobService.sweep_overdue_tasks()
    JobService.notify_task_assigned(task_id=task.id)
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict

from django.conf import settings

logger = logging.getLogger(__name__)


class JobBackendInterface(ABC):
    """
    Abstract interface for background job execution.

    Implementations:
    - LocalJobBackend: runs the handler in-process
    - LambdaJobBackend: publishes to SQS for a Lambda consumer
    - CeleryJobBackend: delegates to Celery shared tasks
    """

    @abstractmethod
    def send_job(
        self,
        job_name: str,
        payload: Dict[str, Any],
        delay_seconds: int = 0,
    ) -> str:
        """
        Queue a job for execution.

        Args:
            job_name: Identifier of the registered job handler
            payload: JSON-serializable keyword arguments for the handler
            delay_seconds: Delay before execution (0 = immediate)

        Returns:
            Job ID for tracking
        """


def _get_backend() -> JobBackendInterface:
    backend = getattr(settings, 'TASK_BACKEND', 'local')

    if backend == 'local':
        from apps.core.backends.local_backend import LocalJobBackend
        return LocalJobBackend()
    elif backend == 'lambda':
        from apps.core.backends.lambda_backend import LambdaJobBackend
        return LambdaJobBackend()
    elif backend == 'celery':
        from apps.core.backends.celery_backend import CeleryJobBackend
        return CeleryJobBackend()
    else:
        raise ValueError(f"Unknown TASK_BACKEND: {backend}")


class JobService:
    """Static facade, one method per job type."""

    @staticmethod
    def sweep_overdue_tasks() -> str:
        """Move every task past its end_time to overdue."""
        logger.info("Queueing sweep_overdue_tasks job")
        return _get_backend().send_job(job_name="sweep_overdue_tasks", payload={})

    @staticmethod
    def send_task_reminders() -> str:
        """Reminders for in-progress tasks and tasks starting soon."""
        logger.info("Queueing send_task_reminders job")
        return _get_backend().send_job(job_name="send_task_reminders", payload={})

    @staticmethod
    def notify_task_assigned(task_id: int) -> str:
        """
        Tell the assignee about a new or reassigned task.

        Used by: task service after the creating/updating transaction commits.
        """
        logger.info(f"Queueing notify_task_assigned job for task {task_id}")
        return _get_backend().send_job(
            job_name="notify_task_assigned",
            payload={"task_id": task_id},
        )
