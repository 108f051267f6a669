from django.core.management.base import BaseCommand

from apps.notifications import reminder_service


class Command(BaseCommand):
    help = 'Sends in-progress and starting-soon task reminders'

    def handle(self, *args, **options):
        count = reminder_service.send_task_reminders()
        self.stdout.write(self.style.SUCCESS(f'Dispatched {count} reminders'))
