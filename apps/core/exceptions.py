"""
Domain error taxonomy.

Services raise these; config.urls renders them as
{"success": false, "message": ..., "errors": [...]} with the matching
HTTP status. Nothing here knows about HTTP requests.
"""
from typing import List, Optional


class DomainError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, errors: Optional[List[dict]] = None):
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)


class ValidationError(DomainError):
    """Malformed or out-of-range input."""
    status_code = 400
    default_message = "Validation failed"

    @classmethod
    def for_field(cls, field: str, message: str) -> 'ValidationError':
        return cls(message, errors=[{'field': field, 'message': message}])


class AuthenticationError(DomainError):
    status_code = 401
    default_message = "Authentication required"


class InvalidToken(AuthenticationError):
    default_message = "Invalid token format"


class ExpiredToken(AuthenticationError):
    default_message = "Token expired"


class PrincipalNotFound(AuthenticationError):
    default_message = "Invalid token or user not found"


class AuthorizationError(DomainError):
    status_code = 403
    default_message = "Access denied"


Forbidden = AuthorizationError


class NotFoundError(DomainError):
    status_code = 404
    default_message = "Resource not found"


class GroupNotFound(NotFoundError):
    default_message = "Group not found or inactive"


class TaskNotFound(NotFoundError):
    default_message = "Task not found"


class UserNotFound(NotFoundError):
    default_message = "User not found"


class NotAMember(NotFoundError):
    default_message = "User is not a member of this group"


class ConflictError(DomainError):
    status_code = 409
    default_message = "Resource already exists"


class DependencyError(DomainError):
    """Datastore or external transport failure."""
    status_code = 503
    default_message = "Service temporarily unavailable"
