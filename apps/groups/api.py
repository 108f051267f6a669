"""
API Router for Groups app.
Group CRUD and membership sub-resources.
"""
from typing import Optional

from django.http import HttpRequest
from ninja import Router

from apps.core.pagination import page_request
from apps.core.responses import success
from apps.core.schemas import EnvelopeOut
from apps.identity.security import require_auth
from . import services
from .schemas import AddMemberIn, GroupCreateIn, GroupUpdateIn, MemberRoleIn

router = Router(tags=["Groups"])


# =============================================================================
# Groups
# =============================================================================

@router.post("/", response={201: EnvelopeOut}, auth=None)
def create_group(request: HttpRequest, payload: GroupCreateIn):
    principal = require_auth(request)
    group = services.create_group(principal, payload.name, payload.description)
    return 201, success({'group': group}, "Group created successfully")


@router.get("/", response=EnvelopeOut, auth=None)
def list_groups(request: HttpRequest, page: int = 1, limit: int = 10, search: Optional[str] = None):
    principal = require_auth(request)
    result = services.list_groups(principal, page_request(page, limit), search)
    return success({'groups': result.items, 'pagination': result.pagination()})


@router.get("/{group_id}", response=EnvelopeOut, auth=None)
def get_group(request: HttpRequest, group_id: int):
    principal = require_auth(request)
    return success(services.get_group_detail(principal, group_id))


@router.put("/{group_id}", response=EnvelopeOut, auth=None)
def update_group(request: HttpRequest, group_id: int, payload: GroupUpdateIn):
    principal = require_auth(request)
    group = services.update_group(principal, group_id, payload.dict(exclude_unset=True))
    return success({'group': group}, "Group updated successfully")


@router.delete("/{group_id}", response=EnvelopeOut, auth=None)
def delete_group(request: HttpRequest, group_id: int):
    principal = require_auth(request)
    count = services.delete_group(principal, group_id)
    return success({'tasks_deactivated': count}, "Group deleted successfully")


@router.get("/{group_id}/tasks", response=EnvelopeOut, auth=None)
def list_group_tasks(request: HttpRequest, group_id: int, page: int = 1, limit: int = 10, status: Optional[str] = None):
    principal = require_auth(request)
    result = services.list_group_tasks(principal, group_id, page_request(page, limit), status)
    return success({'tasks': result.items, 'pagination': result.pagination()})


# =============================================================================
# Members
# =============================================================================

@router.get("/{group_id}/members", response=EnvelopeOut, auth=None)
def list_members(request: HttpRequest, group_id: int):
    principal = require_auth(request)
    return success({'members': services.list_members(principal, group_id)})


@router.post("/{group_id}/members", response={201: EnvelopeOut}, auth=None)
def add_member(request: HttpRequest, group_id: int, payload: AddMemberIn):
    principal = require_auth(request)
    member = services.add_member(principal, group_id, payload.email, payload.role)
    return 201, success({'member': member}, "Member added successfully")


@router.put("/{group_id}/members/{user_id}", response=EnvelopeOut, auth=None)
def update_member_role(request: HttpRequest, group_id: int, user_id: int, payload: MemberRoleIn):
    principal = require_auth(request)
    member = services.update_member_role(principal, group_id, user_id, payload.role)
    return success({'member': member}, "Member role updated successfully")


@router.delete("/{group_id}/members/{user_id}", response=EnvelopeOut, auth=None)
def remove_member(request: HttpRequest, group_id: int, user_id: int):
    principal = require_auth(request)
    services.remove_member(principal, group_id, user_id)
    return success(message="Member removed successfully")
