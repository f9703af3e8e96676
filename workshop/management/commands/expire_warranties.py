from django.core.management.base import BaseCommand
from django.utils import timezone

from workshop.models import Warranty
from workshop.services.warranty_service import WarrantyService


class Command(BaseCommand):
    help = 'Mark active warranties past their end date as expired'

    def add_arguments(self, parser):
        parser.add_argument('--dry-run', action='store_true', help='Only report how many would expire')

    def handle(self, *args, **options):
        if options['dry_run']:
            count = Warranty.objects.filter(status='active', end_date__lt=timezone.now()).count()
            self.stdout.write(f'{count} warranties would be expired')
            return
        count = WarrantyService.expire_warranties()
        self.stdout.write(self.style.SUCCESS(f'✓ Expired {count} warranties'))
