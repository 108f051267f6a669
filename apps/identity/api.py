"""
Identity API endpoints.

Three routers: /auth (registration and tokens), /users (the caller's own
profile and settings) and /superadmin (user administration).
Bearer tokens are read from the Authorization header by require_auth().
"""
from typing import Optional

from django.http import HttpRequest
from ninja import Router

from apps.core.exceptions import ValidationError
from apps.core.pagination import page_request
from apps.core.responses import success
from apps.core.schemas import EnvelopeOut
from apps.notifications import services as notification_services
from apps.tasks import analytics_service
from . import services
from .permissions import Permissions, require_superadmin
from .schemas import (
    ChangePasswordIn,
    LoginIn,
    NotificationSettingsIn,
    ProfileUpdateIn,
    RefreshIn,
    RegisterIn,
    TokenIn,
)
from .security import authenticate, require_auth

auth_router = Router(tags=["Auth"])
users_router = Router(tags=["Users"])
superadmin_router = Router(tags=["Superadmin"])


# =============================================================================
# Auth Endpoints
# =============================================================================

@auth_router.post("/register", response={201: EnvelopeOut}, auth=None)
def register(request: HttpRequest, payload: RegisterIn):
    """Create an account and return an access/refresh token pair."""
    result = services.register_user(**payload.dict())
    return 201, success(result, "User registered successfully")


@auth_router.post("/login", response=EnvelopeOut, auth=None)
def login(request: HttpRequest, payload: LoginIn):
    result = services.login_user(payload.email, payload.password)
    return success(result, "Login successful")


@auth_router.get("/verify", response=EnvelopeOut, auth=None)
def verify(request: HttpRequest):
    """Validate the bearer token and return its user."""
    principal = require_auth(request)
    return success({'user': services.get_user_dto(principal.id)}, "Token is valid")


@auth_router.post("/verify", response=EnvelopeOut, auth=None)
def verify_token(request: HttpRequest, payload: TokenIn):
    """Validate an access token passed in the body."""
    if not payload.token:
        raise ValidationError.for_field('token', "Token is required")
    principal = authenticate(payload.token)
    return success({'user': services.get_user_dto(principal.id)}, "Token is valid")


@auth_router.post("/refresh", response=EnvelopeOut, auth=None)
def refresh(request: HttpRequest, payload: RefreshIn):
    """Exchange a refresh token, sent as `refresh_token` or `token`, for a new access token."""
    refresh_token = payload.refresh_token or payload.token
    if not refresh_token:
        raise ValidationError.for_field('token', "Token is required")
    token = services.refresh_access_token(refresh_token)
    return success({'token': token}, "Token refreshed")


@auth_router.post("/change-password", response=EnvelopeOut, auth=None)
def change_password(request: HttpRequest, payload: ChangePasswordIn):
    principal = require_auth(request)
    services.change_password(principal, payload.current_password, payload.new_password)
    return success(message="Password changed successfully")


# =============================================================================
# User Endpoints
# =============================================================================

@users_router.get("/profile", response=EnvelopeOut, auth=None)
def get_profile(request: HttpRequest):
    principal = require_auth(request)
    return success(services.get_profile(principal))


@users_router.put("/profile", response=EnvelopeOut, auth=None)
def update_profile(request: HttpRequest, payload: ProfileUpdateIn):
    principal = require_auth(request)
    user = services.update_profile(principal, payload.dict(exclude_unset=True))
    return success({'user': user}, "Profile updated successfully")


@users_router.get("/notification-settings", response=EnvelopeOut, auth=None)
def get_notification_settings(request: HttpRequest):
    principal = require_auth(request)
    return success(notification_services.get_preferences(principal))


@users_router.put("/notification-settings", response=EnvelopeOut, auth=None)
def update_notification_settings(request: HttpRequest, payload: NotificationSettingsIn):
    principal = require_auth(request)
    prefs = notification_services.update_preferences(principal, payload.dict(exclude_unset=True))
    return success(prefs, "Notification settings updated successfully")


@users_router.get("/dashboard", response=EnvelopeOut, auth=None)
def dashboard(request: HttpRequest):
    principal = require_auth(request)
    return success(analytics_service.get_dashboard(principal))


@users_router.get("/search", response=EnvelopeOut, auth=None)
def search(request: HttpRequest, q: str = "", limit: int = 10):
    principal = require_auth(request)
    return success({'users': services.search_users(principal, q, limit)})


# =============================================================================
# Superadmin Endpoints
# =============================================================================

@superadmin_router.get("/users", response=EnvelopeOut, auth=None)
def list_users(
    request: HttpRequest,
    page: int = 1,
    limit: int = 10,
    user_type: Optional[str] = None,
    is_active: Optional[bool] = None,
    search: Optional[str] = None,
):
    principal = require_auth(request)
    require_superadmin(principal, Permissions.USERS_VIEW_ALL)
    result = services.list_all_users(page_request(page, limit), user_type, is_active, search)
    return success({'users': result.items, 'pagination': result.pagination()})


@superadmin_router.post("/users/{user_id}/reset-password", response=EnvelopeOut, auth=None)
def reset_password(request: HttpRequest, user_id: int):
    principal = require_auth(request)
    require_superadmin(principal)
    new_password = services.reset_user_password(principal, user_id)
    return success({'new_password': new_password}, "Password reset successfully")


@superadmin_router.post("/users/{user_id}/deactivate", response=EnvelopeOut, auth=None)
def deactivate_user(request: HttpRequest, user_id: int):
    principal = require_auth(request)
    require_superadmin(principal)
    user = services.set_user_active(principal, user_id, False)
    return success({'user': user}, "User deactivated")


@superadmin_router.post("/users/{user_id}/activate", response=EnvelopeOut, auth=None)
def activate_user(request: HttpRequest, user_id: int):
    principal = require_auth(request)
    require_superadmin(principal)
    user = services.set_user_active(principal, user_id, True)
    return success({'user': user}, "User activated")
