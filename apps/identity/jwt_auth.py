"""
JWT utilities for TaskHub.

Access tokens authenticate API calls; refresh tokens only mint new access
tokens. Both are HS256-signed with JWT_SECRET.
"""
from datetime import datetime, timedelta, timezone
from typing import Tuple

import jwt
from django.conf import settings

from apps.core.exceptions import ExpiredToken, InvalidToken

JWT_ALGORITHM = 'HS256'
ACCESS = 'access'
REFRESH = 'refresh'


def _secret() -> str:
    return settings.JWT_SECRET


def _encode(user_id: int, token_type: str, lifetime: timedelta, **claims) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        'sub': str(user_id),
        'exp': now + lifetime,
        'iat': now,
        'type': token_type,
        **claims,
    }
    return jwt.encode(payload, _secret(), algorithm=JWT_ALGORITHM)


def create_access_token(user_id: int, email: str, user_type: str) -> str:
    """Short-lived token carrying the identity claims used by the frontend."""
    return _encode(
        user_id,
        ACCESS,
        timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES),
        email=email,
        user_type=user_type,
    )


def create_refresh_token(user_id: int) -> str:
    return _encode(user_id, REFRESH, timedelta(days=settings.JWT_REFRESH_TOKEN_EXPIRE_DAYS))


def create_token_pair(user) -> Tuple[str, str]:
    """
    Returns:
        (access_token, refresh_token)
    """
    return (
        create_access_token(user.id, user.email, user.user_type),
        create_refresh_token(user.id),
    )


def decode_token(token: str, expected_type: str = ACCESS) -> dict:
    """
    Verify signature, expiry and token type.

    Raises:
        ExpiredToken: the token's exp is in the past
        InvalidToken: malformed, bad signature, wrong type or missing subject
    """
    try:
        payload = jwt.decode(token, _secret(), algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise ExpiredToken()
    except jwt.InvalidTokenError:
        raise InvalidToken()

    if payload.get('type') != expected_type or 'sub' not in payload:
        raise InvalidToken()
    return payload


def get_user_id(payload: dict) -> int:
    try:
        return int(payload['sub'])
    except (KeyError, TypeError, ValueError):
        raise InvalidToken()
