"""
Lambda Job Backend - Async execution via AWS SQS + Lambda.

Messages are consumed by lambda_handlers.sqs_job_handler.

Environment Variables:
    TASK_QUEUE_URL: SQS queue URL for job messages
    AWS_REGION: AWS region (default: us-east-1)
"""

import os
import json
import uuid
import logging
from typing import Any, Dict
from apps.core.job_service import JobBackendInterface

logger = logging.getLogger(__name__)

# SQS rejects delays above 15 minutes
MAX_SQS_DELAY_SECONDS = 900


class LambdaJobBackend(JobBackendInterface):

    def __init__(self):
        self._sqs_client = None
        self._queue_url = os.getenv('TASK_QUEUE_URL')

        if not self._queue_url:
            logger.warning("[LAMBDA] TASK_QUEUE_URL not set. Lambda backend will fail on send_job.")

    @property
    def sqs_client(self):
        if self._sqs_client is None:
            import boto3
            self._sqs_client = boto3.client(
                'sqs',
                region_name=os.getenv('AWS_REGION', 'us-east-1')
            )
        return self._sqs_client

    def send_job(
        self,
        job_name: str,
        payload: Dict[str, Any],
        delay_seconds: int = 0,
    ) -> str:
        job_id = str(uuid.uuid4())

        if not self._queue_url:
            raise RuntimeError("TASK_QUEUE_URL environment variable not set.")

        message_body = json.dumps({
            "job_id": job_id,
            "job_name": job_name,
            "payload": payload,
        })

        logger.info(f"[LAMBDA] Sending job {job_name} to SQS (id={job_id})")

        try:
            response = self.sqs_client.send_message(
                QueueUrl=self._queue_url,
                MessageBody=message_body,
                DelaySeconds=min(delay_seconds, MAX_SQS_DELAY_SECONDS),
                MessageAttributes={
                    'JobName': {'DataType': 'String', 'StringValue': job_name},
                    'JobId': {'DataType': 'String', 'StringValue': job_id},
                },
            )
        except Exception as e:
            logger.exception(f"[LAMBDA] Failed to send job {job_name}: {e}")
            raise

        logger.info(f"[LAMBDA] Job {job_name} queued. SQS MessageId: {response['MessageId']}")
        return job_id
