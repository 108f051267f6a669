"""
Notification transports.

A transport is invoked with (recipient, message) and reports success or
failure; it never raises for delivery problems. Recording the outcome is
the dispatcher's job (see services.dispatch).

NOTIFICATION_TRANSPORT=console  # log only (development, tests)
NOTIFICATION_TRANSPORT=live     # WhatsApp Cloud API, Twilio SMS, SMTP email
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import requests
from django.conf import settings
from django.core.mail import send_mail

from .models import NotificationType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeliveryResult:
    success: bool
    error: Optional[str] = None
    provider_id: Optional[str] = None


class NotificationTransport(ABC):

    @abstractmethod
    def send(self, recipient: str, message: str, subject: Optional[str] = None) -> DeliveryResult:
        """Deliver message to recipient (phone number or email address)."""


class ConsoleTransport(NotificationTransport):
    def __init__(self, channel: str):
        self.channel = channel

    def send(self, recipient: str, message: str, subject: Optional[str] = None) -> DeliveryResult:
        logger.info(f"[NOTIFY] ({self.channel}) to {recipient}: {message}")
        return DeliveryResult(success=True)


class WhatsAppTransport(NotificationTransport):
    """Meta WhatsApp Cloud API text messages."""

    def send(self, recipient: str, message: str, subject: Optional[str] = None) -> DeliveryResult:
        if not settings.WHATSAPP_API_TOKEN or not settings.WHATSAPP_PHONE_NUMBER_ID:
            return DeliveryResult(success=False, error="WhatsApp API is not configured")

        url = f"{settings.WHATSAPP_API_URL}/{settings.WHATSAPP_PHONE_NUMBER_ID}/messages"
        payload = {
            "messaging_product": "whatsapp",
            "to": recipient.lstrip('+'),
            "type": "text",
            "text": {"body": message},
        }
        headers = {
            "Authorization": f"Bearer {settings.WHATSAPP_API_TOKEN}",
            "Content-Type": "application/json",
        }
        try:
            response = requests.post(url, json=payload, headers=headers, timeout=settings.NOTIFICATION_HTTP_TIMEOUT)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            logger.warning(f"[NOTIFY] WhatsApp send to {recipient} failed: {e}")
            return DeliveryResult(success=False, error=str(e))

        messages = response.json().get("messages") or [{}]
        return DeliveryResult(success=True, provider_id=messages[0].get("id"))


class TwilioSmsTransport(NotificationTransport):
    API_URL = "https://api.twilio.com/2010-04-01/Accounts/{sid}/Messages.json"

    def send(self, recipient: str, message: str, subject: Optional[str] = None) -> DeliveryResult:
        sid = settings.TWILIO_ACCOUNT_SID
        if not sid or not settings.TWILIO_AUTH_TOKEN or not settings.TWILIO_FROM_NUMBER:
            return DeliveryResult(success=False, error="SMS provider is not configured")

        try:
            response = requests.post(
                self.API_URL.format(sid=sid),
                data={"To": recipient, "From": settings.TWILIO_FROM_NUMBER, "Body": message},
                auth=(sid, settings.TWILIO_AUTH_TOKEN),
                timeout=settings.NOTIFICATION_HTTP_TIMEOUT,
            )
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            logger.warning(f"[NOTIFY] SMS send to {recipient} failed: {e}")
            return DeliveryResult(success=False, error=str(e))

        return DeliveryResult(success=True, provider_id=response.json().get("sid"))


class EmailTransport(NotificationTransport):
    DEFAULT_SUBJECT = "TaskHub notification"

    def send(self, recipient: str, message: str, subject: Optional[str] = None) -> DeliveryResult:
        try:
            sent = send_mail(
                subject or self.DEFAULT_SUBJECT,
                message,
                settings.DEFAULT_FROM_EMAIL,
                [recipient],
                fail_silently=False,
            )
        except Exception as e:
            # smtplib, socket and backend-specific errors
            logger.warning(f"[NOTIFY] Email send to {recipient} failed: {e}")
            return DeliveryResult(success=False, error=str(e))

        if not sent:
            return DeliveryResult(success=False, error="Email backend accepted no messages")
        return DeliveryResult(success=True)


LIVE_TRANSPORTS = {
    NotificationType.WHATSAPP: WhatsAppTransport,
    NotificationType.SMS: TwilioSmsTransport,
    NotificationType.EMAIL: EmailTransport,
}


def get_transport(notification_type: str) -> NotificationTransport:
    mode = getattr(settings, 'NOTIFICATION_TRANSPORT', 'console')
    if mode == 'console':
        return ConsoleTransport(notification_type)
    if mode == 'live':
        transport_class = LIVE_TRANSPORTS.get(notification_type)
        if transport_class is None:
            raise ValueError(f"Unknown notification type: {notification_type}")
        return transport_class()
    raise ValueError(f"Unknown NOTIFICATION_TRANSPORT: {mode}")
