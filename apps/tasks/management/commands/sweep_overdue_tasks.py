from django.core.management.base import BaseCommand
from django.utils import timezone

from apps.tasks import services
from apps.tasks.models import OPEN_STATUSES, Task


class Command(BaseCommand):
    help = 'Marks active, open tasks whose end time has passed as overdue'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='List the tasks that would be marked without changing anything',
        )

    def handle(self, *args, **options):
        if options['dry_run']:
            due = Task.objects.filter(
                is_active=True,
                status__in=OPEN_STATUSES,
                end_time__lt=timezone.now(),
            ).order_by('end_time')
            for task in due:
                self.stdout.write(f'  #{task.id} {task.title} (due {task.end_time:%Y-%m-%d %H:%M})')
            self.stdout.write(self.style.WARNING(f'{due.count()} tasks would be marked overdue'))
            return

        count = services.sweep_overdue_tasks()
        self.stdout.write(self.style.SUCCESS(f'Marked {count} tasks overdue'))
