"""
Lambda Handlers - Entry points for AWS Lambda functions.

1. SQS Job Processing - consumes messages queued by the lambda job backend
2. Django API (via Mangum) - HTTP requests through API Gateway
3. Scheduled Events - EventBridge triggers for the overdue and reminder sweeps
"""

import os
import json
import logging

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

import django
django.setup()

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


def sqs_job_handler(event, context):
    """
    AWS Lambda handler for SQS job messages.

    Event structure:
    {
        "Records": [
            {"body": "{\"job_id\": \"...\", \"job_name\": \"...\", \"payload\": {...}}"}
        ]
    }

    A failing record re-raises so SQS redelivers it (and eventually DLQs it).
    """
    from apps.core.backends.local_backend import JOB_HANDLERS

    processed = 0
    skipped = 0

    for record in event.get('Records', []):
        message = json.loads(record['body'])
        job_id = message.get('job_id', 'unknown')
        job_name = message['job_name']
        payload = message.get('payload', {})

        handler = JOB_HANDLERS.get(job_name)
        if handler is None:
            logger.error(f"No handler for job: {job_name} (id={job_id})")
            skipped += 1
            continue

        logger.info(f"Processing job {job_name} (id={job_id})")
        try:
            result = handler(**payload)
        except Exception as e:
            logger.exception(f"Job {job_name} (id={job_id}) failed: {e}")
            raise
        logger.info(f"Job {job_name} completed: {result}")
        processed += 1

    return {
        'statusCode': 200,
        'body': json.dumps({'processed': processed, 'skipped': skipped}),
    }


def scheduled_sweep_overdue_tasks(event, context):
    """
    EventBridge scheduled handler: mark past-due open tasks overdue.

    Schedule: every OVERDUE_SWEEP_MINUTES (default 10)
    """
    from apps.tasks import services

    logger.info("Running scheduled sweep_overdue_tasks")
    count = services.sweep_overdue_tasks()
    return {'statusCode': 200, 'body': json.dumps({'overdue_count': count})}


def scheduled_send_task_reminders(event, context):
    """
    EventBridge scheduled handler: in-progress and starting-soon reminders.

    Schedule: every REMINDER_SWEEP_MINUTES (default 60)
    """
    from apps.notifications import reminder_service

    logger.info("Running scheduled send_task_reminders")
    count = reminder_service.send_task_reminders()
    return {'statusCode': 200, 'body': json.dumps({'reminders_sent': count})}


# =============================================================================
# Django API Handler (Mangum)
# =============================================================================

_asgi_handler = None


def api_handler(event, context):
    """
    AWS Lambda handler for HTTP requests via API Gateway.

    Uses Mangum to wrap Django's ASGI application.
    """
    global _asgi_handler

    if _asgi_handler is None:
        from mangum import Mangum
        from config.asgi import application
        _asgi_handler = Mangum(application, lifespan="off")

    return _asgi_handler(event, context)
