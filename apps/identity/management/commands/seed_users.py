from django.core.management.base import BaseCommand
from django.db import transaction

from apps.identity.models import User, UserType
from apps.notifications.models import UserSettings


class Command(BaseCommand):
    help = 'Seeds the database with one user of each type'

    def add_arguments(self, parser):
        parser.add_argument('--password', default='Password123!', help='Password for every seeded user')

    def handle(self, *args, **options):
        users = [
            {'email': 'superadmin@taskhub.local', 'first_name': 'Super', 'last_name': 'Admin', 'user_type': UserType.SUPERADMIN},
            {'email': 'groupadmin@taskhub.local', 'first_name': 'Group', 'last_name': 'Admin', 'user_type': UserType.GROUP_ADMIN},
            {'email': 'member@taskhub.local', 'first_name': 'Team', 'last_name': 'Member', 'user_type': UserType.INDIVIDUAL},
        ]

        for u in users:
            with transaction.atomic():
                user, created = User.objects.get_or_create(
                    email=u['email'],
                    defaults={'first_name': u['first_name'], 'last_name': u['last_name']},
                )
                user.user_type = u['user_type']
                if u['user_type'] == UserType.SUPERADMIN:
                    user.is_staff = True
                    user.is_superuser = True

                if created:
                    user.set_password(options['password'])
                    user.save()
                    UserSettings.objects.get_or_create(user=user)
                    self.stdout.write(self.style.SUCCESS(f'Created user: {u["email"]} ({u["user_type"]})'))
                else:
                    user.save()
                    self.stdout.write(self.style.WARNING(f'Updated user: {u["email"]}'))
