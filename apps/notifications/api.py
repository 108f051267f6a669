"""
API Router for Notifications app.
"""
from typing import Optional

from django.http import HttpRequest
from ninja import Header, Router

from apps.core.pagination import page_request
from apps.core.responses import success
from apps.core.schemas import EnvelopeOut
from apps.identity.security import require_auth
from . import services
from .schemas import DeliveryReceiptIn, PreferencesIn, TestNotificationIn

router = Router(tags=["Notifications"])

DEFAULT_LOG_LIMIT = 20


@router.get("/logs", response=EnvelopeOut, auth=None)
def list_logs(
    request: HttpRequest,
    page: int = 1,
    limit: int = DEFAULT_LOG_LIMIT,
    status: Optional[str] = None,
    notification_type: Optional[str] = None,
):
    principal = require_auth(request)
    result = services.list_logs(principal, page_request(page, limit), status, notification_type)
    return success({'notifications': result.items, 'pagination': result.pagination()})


@router.get("/stats", response=EnvelopeOut, auth=None)
def stats(request: HttpRequest):
    principal = require_auth(request)
    return success(services.get_stats(principal))


@router.post("/test", response=EnvelopeOut, auth=None)
def send_test(request: HttpRequest, payload: TestNotificationIn):
    """Send a test message over one channel to the caller."""
    principal = require_auth(request)
    log = services.send_test(principal, payload.notification_type, payload.message)
    return success({'notification': log}, "Test notification processed")


@router.post("/{notification_id}/retry", response=EnvelopeOut, auth=None)
def retry(request: HttpRequest, notification_id: int):
    principal = require_auth(request)
    log = services.retry_notification(principal, notification_id)
    return success({'notification': log}, "Notification retry processed")


@router.get("/preferences", response=EnvelopeOut, auth=None)
def get_preferences(request: HttpRequest):
    principal = require_auth(request)
    return success(services.get_preferences(principal))


@router.put("/preferences", response=EnvelopeOut, auth=None)
def update_preferences(request: HttpRequest, payload: PreferencesIn):
    principal = require_auth(request)
    prefs = services.update_preferences(principal, payload.dict(exclude_unset=True))
    return success(prefs, "Notification preferences updated successfully")


@router.post("/webhook/delivered", response=EnvelopeOut, auth=None)
def delivery_receipt(
    request: HttpRequest,
    payload: DeliveryReceiptIn,
    x_webhook_token: str = Header("", alias="X-Webhook-Token"),
):
    """Provider callback: mark a sent notification as delivered."""
    log = services.mark_delivered(payload.notification_id, x_webhook_token)
    return success({'notification': log})
