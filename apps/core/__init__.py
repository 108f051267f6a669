"""
Core app - Shared abstractions and utilities.

This app provides:
- The domain error taxonomy rendered by the API exception handlers
- Pagination and response envelope helpers
- Background job dispatch (JobService) with switchable backends:
  local (sync), AWS Lambda + SQS, Celery + Redis
"""
