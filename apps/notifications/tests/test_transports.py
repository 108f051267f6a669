"""
Unit tests for notification transports and the reminder pass.
"""
from datetime import datetime, timedelta, timezone as dt_timezone
from unittest import mock

import requests
from django.core import mail
from django.test import TestCase, override_settings
from django.utils import timezone

from apps.identity.models import User
from apps.notifications import reminder_service
from apps.notifications.models import NotificationKind, NotificationLog, NotificationStatus, UserSettings
from apps.notifications.transports import (
    ConsoleTransport,
    EmailTransport,
    TwilioSmsTransport,
    WhatsAppTransport,
    get_transport,
)
from apps.tasks.models import Task, TaskStatus


@override_settings(
    WHATSAPP_API_URL='https://graph.example.com/v18.0',
    WHATSAPP_API_TOKEN='wa-token',
    WHATSAPP_PHONE_NUMBER_ID='12345',
    TWILIO_ACCOUNT_SID='AC123',
    TWILIO_AUTH_TOKEN='tw-token',
    TWILIO_FROM_NUMBER='+15550000000',
)
class TransportTest(TestCase):

    @mock.patch('apps.notifications.transports.requests.post')
    def test_whatsapp_success(self, post):
        post.return_value.json.return_value = {'messages': [{'id': 'wamid.1'}]}

        result = WhatsAppTransport().send('+15550100111', 'hello')

        self.assertTrue(result.success)
        self.assertEqual(result.provider_id, 'wamid.1')
        url = post.call_args.args[0]
        self.assertEqual(url, 'https://graph.example.com/v18.0/12345/messages')
        body = post.call_args.kwargs['json']
        self.assertEqual(body['to'], '15550100111')
        self.assertEqual(body['text'], {'body': 'hello'})

    @mock.patch('apps.notifications.transports.requests.post')
    def test_whatsapp_http_error_is_a_failed_result(self, post):
        post.side_effect = requests.exceptions.ConnectionError('connection refused')

        result = WhatsAppTransport().send('+15550100111', 'hello')

        self.assertFalse(result.success)
        self.assertIn('connection refused', result.error)

    @mock.patch('apps.notifications.transports.requests.post')
    def test_twilio_sms(self, post):
        post.return_value.json.return_value = {'sid': 'SM1'}

        result = TwilioSmsTransport().send('+15550100111', 'hello')

        self.assertTrue(result.success)
        self.assertEqual(result.provider_id, 'SM1')
        self.assertEqual(post.call_args.kwargs['auth'], ('AC123', 'tw-token'))
        self.assertEqual(post.call_args.kwargs['data']['To'], '+15550100111')

    def test_email(self):
        result = EmailTransport().send('nina@example.com', 'hello', subject='Hi')
        self.assertTrue(result.success)
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].subject, 'Hi')

    def test_get_transport(self):
        with self.settings(NOTIFICATION_TRANSPORT='console'):
            self.assertIsInstance(get_transport('sms'), ConsoleTransport)
        with self.settings(NOTIFICATION_TRANSPORT='live'):
            self.assertIsInstance(get_transport('sms'), TwilioSmsTransport)
            self.assertIsInstance(get_transport('email'), EmailTransport)


class ReminderTest(TestCase):

    def setUp(self):
        self.user = User.objects.create_user(
            email='rita@example.com', password='pw', first_name='Rita', last_name='Remind',
            phone_number='+15550100222',
        )
        self.prefs = UserSettings.objects.create(user=self.user, notification_frequency=60)
        self.now = timezone.now()

    def make_task(self, status, start, end):
        return Task.objects.create(
            title='Call supplier',
            start_time=start,
            end_time=end,
            status=status,
            created_by=self.user,
            assigned_to=self.user,
        )

    def test_in_progress_reminder_respects_frequency(self):
        task = self.make_task(TaskStatus.IN_PROGRESS, self.now - timedelta(hours=1), self.now + timedelta(hours=3))

        self.assertEqual(reminder_service.send_task_reminders(now=self.now), 2)
        self.assertEqual(reminder_service.send_task_reminders(now=self.now + timedelta(minutes=10)), 0)
        self.assertEqual(NotificationLog.objects.filter(task=task).count(), 2)

    def test_disabled_channel_is_skipped(self):
        self.prefs.notification_whatsapp = False
        self.prefs.save()
        task = self.make_task(TaskStatus.IN_PROGRESS, self.now - timedelta(hours=1), self.now + timedelta(hours=3))

        reminder_service.send_task_reminders(now=self.now)

        self.assertEqual(list(NotificationLog.objects.filter(task=task).values_list('notification_type', flat=True)), ['email'])

    def test_starting_soon_sent_once(self):
        task = self.make_task(TaskStatus.PENDING, self.now + timedelta(minutes=20), self.now + timedelta(hours=1))

        self.assertEqual(reminder_service.send_task_reminders(now=self.now), 2)
        self.assertEqual(reminder_service.send_task_reminders(now=self.now + timedelta(minutes=1)), 0)
        self.assertTrue(
            NotificationLog.objects.filter(task=task, status=NotificationStatus.SENT, message__contains='starts soon').exists()
        )

    def test_assignment_notice(self):
        task = self.make_task(TaskStatus.PENDING, self.now + timedelta(days=1), self.now + timedelta(days=2))
        self.assertEqual(reminder_service.notify_task_assigned(task.id), 2)
        self.assertIn('assigned a new task', NotificationLog.objects.filter(task=task).first().message)

    def test_starting_soon_not_resent_after_title_edit(self):
        task = self.make_task(TaskStatus.PENDING, self.now + timedelta(minutes=20), self.now + timedelta(hours=1))

        self.assertEqual(reminder_service.send_task_reminders(now=self.now), 2)
        task.title = 'Daily standup'
        task.start_time = self.now + timedelta(minutes=25)
        task.save()
        self.assertEqual(reminder_service.send_task_reminders(now=self.now + timedelta(minutes=1)), 0)

        logs = NotificationLog.objects.filter(task=task)
        self.assertEqual(logs.count(), 2)
        self.assertEqual(set(logs.values_list('kind', flat=True)), {NotificationKind.STARTING_SOON})

    def test_assignment_notice_does_not_count_as_reminder(self):
        task = self.make_task(TaskStatus.IN_PROGRESS, self.now - timedelta(hours=1), self.now + timedelta(hours=3))
        reminder_service.notify_task_assigned(task.id)

        self.assertEqual(reminder_service.send_task_reminders(now=self.now), 2)

    def test_times_rendered_in_recipient_zone(self):
        self.prefs.timezone = 'Asia/Tokyo'
        self.prefs.save()
        start = datetime(2030, 1, 1, 9, 0, tzinfo=dt_timezone.utc)
        task = self.make_task(TaskStatus.PENDING, start, start + timedelta(hours=1))

        message = reminder_service.render(reminder_service.STARTING_SOON_TEMPLATE, task, self.user)

        self.assertIn('2030-01-01 18:00 JST', message)

    def test_unknown_zone_falls_back_to_server_zone(self):
        UserSettings.objects.filter(pk=self.prefs.pk).update(timezone='Mars/Olympus')
        start = datetime(2030, 1, 1, 9, 0, tzinfo=dt_timezone.utc)
        task = self.make_task(TaskStatus.PENDING, start, start + timedelta(hours=1))

        message = reminder_service.render(reminder_service.STARTING_SOON_TEMPLATE, task, self.user)

        self.assertIn('2030-01-01 09:00 UTC', message)
