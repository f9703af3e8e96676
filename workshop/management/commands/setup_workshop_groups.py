from django.contrib.auth.models import Group
from django.core.management.base import BaseCommand


class Command(BaseCommand):
    help = 'Set up the staff groups the workshop workflows rely on'

    GROUPS = [
        'Admin',
        'Service Staff',
        'Sales Executive',
    ]

    def handle(self, *args, **options):
        for name in self.GROUPS:
            group, created = Group.objects.get_or_create(name=name)
            if created:
                self.stdout.write(self.style.SUCCESS(f'Created group: {group.name}'))
            else:
                self.stdout.write(f'Group already exists: {group.name}')

        self.stdout.write(self.style.SUCCESS('✓ Workshop groups setup complete'))
