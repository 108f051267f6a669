"""
Request authentication.

Every endpoint is declared with auth=None and calls require_auth(request)
itself, so the error envelope for missing, malformed and expired tokens is
produced by the same handlers as every other domain error.
"""
import logging

from django.http import HttpRequest

from apps.core.exceptions import AuthenticationError, PrincipalNotFound
from .dtos import Principal
from .jwt_auth import ACCESS, decode_token, get_user_id
from .models import User

logger = logging.getLogger(__name__)

BEARER_PREFIX = 'Bearer '


def authenticate(token: str) -> Principal:
    """
    Resolve a bearer token to the principal it was issued for.

    Raises InvalidToken, ExpiredToken or PrincipalNotFound.
    """
    payload = decode_token(token, expected_type=ACCESS)
    user_id = get_user_id(payload)

    user = User.objects.filter(id=user_id, is_active=True).only('id', 'email', 'user_type').first()
    if user is None:
        logger.warning(f"Token presented for missing or inactive user {user_id}")
        raise PrincipalNotFound()

    return Principal(id=user.id, email=user.email, user_type=user.user_type)


def get_bearer_token(request: HttpRequest) -> str:
    header = request.headers.get('Authorization', '')
    if not header.startswith(BEARER_PREFIX):
        return ''
    return header[len(BEARER_PREFIX):].strip()


def require_auth(request: HttpRequest) -> Principal:
    """Require a valid access token. Raises 401 if absent or invalid."""
    token = get_bearer_token(request)
    if not token:
        raise AuthenticationError("Access token required")
    principal = authenticate(token)
    request.principal = principal
    return principal
