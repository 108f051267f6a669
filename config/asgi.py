"""
ASGI config for TaskHub project.

Serves Uvicorn/Daphne directly and AWS Lambda through Mangum
(see lambda_handlers.api_handler).
"""
import os

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

from django.core.asgi import get_asgi_application

# Initialize Django at import time so Lambda pays the cost on cold start only
application = get_asgi_application()
