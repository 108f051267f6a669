"""Services for Identity app."""
import logging
import secrets
from typing import Optional

from django.db import IntegrityError, transaction
from django.db.models import Count, Q

from apps.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    UserNotFound,
    ValidationError,
)
from apps.core.pagination import Page, PageRequest, paginate
from apps.groups.models import GroupMember
from apps.notifications.models import UserSettings
from apps.notifications.services import get_or_create_settings, settings_to_dict
from apps.tasks.analytics_service import task_statistics
from apps.tasks.models import Task
from .dtos import AuthResultDTO, Principal, ProfileDTO, ProfileGroupDTO, UserDTO, UserSummaryDTO
from .jwt_auth import REFRESH, create_access_token, create_token_pair, decode_token, get_user_id
from .models import User, UserType

logger = logging.getLogger(__name__)

SELF_REGISTRATION_TYPES = (UserType.INDIVIDUAL, UserType.GROUP_ADMIN)
PROFILE_FIELDS = ('first_name', 'last_name', 'phone_number')
MAX_SEARCH_LIMIT = 100


def to_user_dto(user: User) -> UserDTO:
    return UserDTO(
        id=user.id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        phone_number=user.phone_number,
        user_type=user.user_type,
        is_active=user.is_active,
        created_at=user.created_at,
    )


def get_user_dto(user_id: int) -> Optional[UserDTO]:
    user = User.objects.filter(id=user_id).first()
    return to_user_dto(user) if user else None


def get_active_user(user_id: int) -> User:
    user = User.objects.filter(id=user_id, is_active=True).first()
    if user is None:
        raise UserNotFound()
    return user


# =============================================================================
# Registration & Login
# =============================================================================

def register_user(
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    phone_number: Optional[str] = None,
    user_type: str = UserType.INDIVIDUAL,
) -> AuthResultDTO:
    """
    Create a user and its notification settings in one transaction.

    Superadmins cannot self-register; they are provisioned by seed_users.
    """
    if user_type not in SELF_REGISTRATION_TYPES:
        raise ValidationError.for_field('user_type', "User type must be either individual or group_admin")

    email = email.strip().lower()
    if User.objects.filter(email=email).exists():
        raise ConflictError("User with this email already exists")

    try:
        with transaction.atomic():
            user = User.objects.create_user(
                email=email,
                password=password,
                first_name=first_name.strip(),
                last_name=last_name.strip(),
                phone_number=phone_number or None,
                user_type=user_type,
            )
            UserSettings.objects.create(user=user)
    except IntegrityError:
        raise ConflictError("User with this email already exists")

    logger.info(f"Registered user {user.id} ({user.user_type})")
    access, refresh = create_token_pair(user)
    return AuthResultDTO(user=to_user_dto(user), token=access, refresh_token=refresh)


def login_user(email: str, password: str) -> AuthResultDTO:
    email = email.strip().lower()
    user = User.objects.filter(email=email).first()
    if user is None:
        raise AuthenticationError("Invalid email or password")

    if not user.check_password(password):
        raise AuthenticationError("Invalid email or password")

    if not user.is_active:
        raise AuthenticationError("Account is deactivated. Please contact support.")

    access, refresh = create_token_pair(user)
    return AuthResultDTO(user=to_user_dto(user), token=access, refresh_token=refresh)


def refresh_access_token(refresh_token: str) -> str:
    payload = decode_token(refresh_token, expected_type=REFRESH)
    user = User.objects.filter(id=get_user_id(payload), is_active=True).first()
    if user is None:
        raise AuthenticationError("Invalid refresh token")
    return create_access_token(user.id, user.email, user.user_type)


def change_password(principal: Principal, current_password: str, new_password: str) -> None:
    user = get_active_user(principal.id)
    if not user.check_password(current_password):
        raise ValidationError.for_field('current_password', "Current password is incorrect")
    if current_password == new_password:
        raise ValidationError.for_field('new_password', "New password must differ from the current password")

    user.set_password(new_password)
    user.save(update_fields=['password', 'updated_at'])
    logger.info(f"Password changed for user {user.id}")


# =============================================================================
# Profile
# =============================================================================

def get_profile(principal: Principal) -> ProfileDTO:
    user = get_active_user(principal.id)

    memberships = (
        GroupMember.objects
        .filter(user_id=user.id, group__is_active=True)
        .select_related('group')
        .annotate(member_count=Count('group__memberships'))
        .order_by('group__name')
    )
    groups = [
        ProfileGroupDTO(
            id=m.group_id,
            name=m.group.name,
            description=m.group.description,
            user_role=m.role,
            member_count=m.member_count,
        )
        for m in memberships
    ]

    tasks = Task.objects.filter(is_active=True).filter(Q(created_by_id=user.id) | Q(assigned_to_id=user.id))

    return ProfileDTO(
        user=to_user_dto(user),
        settings=settings_to_dict(get_or_create_settings(user.id)),
        groups=groups,
        task_statistics=task_statistics(tasks),
    )


def update_profile(principal: Principal, data: dict) -> UserDTO:
    user = get_active_user(principal.id)

    changed = []
    for key in PROFILE_FIELDS:
        if key in data:
            value = data[key]
            if isinstance(value, str):
                value = value.strip()
            if key == 'phone_number' and not value:
                value = None
            setattr(user, key, value)
            changed.append(key)

    if not changed:
        raise ValidationError("No fields to update")

    user.save(update_fields=changed + ['updated_at'])
    return to_user_dto(user)


def search_users(principal: Principal, query: str, limit: int = 10) -> list[UserSummaryDTO]:
    """Active users other than the caller whose name or email contains query."""
    query = (query or '').strip()
    if len(query) < 2:
        raise ValidationError.for_field('q', "Search query must be at least 2 characters")

    limit = max(1, min(limit, MAX_SEARCH_LIMIT))
    users = (
        User.objects
        .filter(is_active=True)
        .exclude(id=principal.id)
        .filter(Q(first_name__icontains=query) | Q(last_name__icontains=query) | Q(email__icontains=query))
        .order_by('first_name', 'last_name')[:limit]
    )
    return [
        UserSummaryDTO(
            id=u.id,
            email=u.email,
            first_name=u.first_name,
            last_name=u.last_name,
            user_type=u.user_type,
        )
        for u in users
    ]


# =============================================================================
# Superadmin
# =============================================================================

def list_all_users(
    page: PageRequest,
    user_type: Optional[str] = None,
    is_active: Optional[bool] = None,
    search: Optional[str] = None,
) -> Page:
    users = User.objects.all().order_by('-created_at', '-id')
    if user_type:
        users = users.filter(user_type=user_type)
    if is_active is not None:
        users = users.filter(is_active=is_active)
    if search:
        users = users.filter(
            Q(first_name__icontains=search) | Q(last_name__icontains=search) | Q(email__icontains=search)
        )
    return paginate(users, page, transform=to_user_dto)


def reset_user_password(principal: Principal, user_id: int) -> str:
    """Set a random password and return it; it is not stored anywhere else."""
    user = User.objects.filter(id=user_id).first()
    if user is None:
        raise UserNotFound()

    new_password = secrets.token_hex(8)
    user.set_password(new_password)
    user.save(update_fields=['password', 'updated_at'])
    logger.info(f"Superadmin {principal.id} reset password of user {user.id}")
    return new_password


def set_user_active(principal: Principal, user_id: int, is_active: bool) -> UserDTO:
    if user_id == principal.id and not is_active:
        raise AuthorizationError("You cannot deactivate your own account")

    user = User.objects.filter(id=user_id).first()
    if user is None:
        raise UserNotFound()

    user.is_active = is_active
    user.save(update_fields=['is_active', 'updated_at'])
    logger.info(f"Superadmin {principal.id} set is_active={is_active} on user {user.id}")
    return to_user_dto(user)

