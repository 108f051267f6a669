"""
URL configuration for TaskHub project.
"""
import logging

from django.contrib import admin
from django.db import DatabaseError
from django.urls import path
from ninja import NinjaAPI
from ninja.errors import HttpError, ValidationError as SchemaValidationError

from apps.core.exceptions import DependencyError, DomainError
from apps.core.responses import error

logger = logging.getLogger(__name__)

api = NinjaAPI(
    title="TaskHub API",
    version="1.0.0",
    description="Multi-tenant task management API",
    docs_url="/docs",
)

from apps.identity.api import auth_router, superadmin_router, users_router
from apps.groups.api import router as groups_router
from apps.tasks.api import router as tasks_router
from apps.notifications.api import router as notifications_router

api.add_router("/auth/", auth_router)
api.add_router("/users/", users_router)
api.add_router("/superadmin/", superadmin_router)
api.add_router("/groups/", groups_router)
api.add_router("/tasks/", tasks_router)
api.add_router("/notifications/", notifications_router)


# =============================================================================
# Error envelopes
# =============================================================================

def _field_errors(errors):
    result = []
    for err in errors:
        loc = err.get('loc') or ()
        message = str(err.get('msg', 'Invalid value'))
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        result.append({'field': str(loc[-1]) if loc else None, 'message': message})
    return result


@api.exception_handler(DomainError)
def domain_error(request, exc: DomainError):
    return api.create_response(request, error(exc.message, exc.errors), status=exc.status_code)


@api.exception_handler(SchemaValidationError)
def schema_validation_error(request, exc: SchemaValidationError):
    return api.create_response(
        request, error("Validation failed", _field_errors(exc.errors)), status=400
    )


@api.exception_handler(HttpError)
def http_error(request, exc: HttpError):
    return api.create_response(request, error(str(exc)), status=exc.status_code)


@api.exception_handler(DatabaseError)
def database_error(request, exc: DatabaseError):
    logger.exception(f"Database error on {request.path}: {exc}")
    dependency = DependencyError()
    return api.create_response(request, error(dependency.message), status=dependency.status_code)


urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/', api.urls),
]
