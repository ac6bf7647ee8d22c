"""
Django management command to cancel expired order holds and return their
stock. Intended for cron, as an alternative to the restore-holds endpoint.
"""
from django.core.management.base import BaseCommand
from django.utils import timezone

from atelier.orders.holds import restore_expired_holds
from atelier.orders.models import Order


class Command(BaseCommand):
    help = 'Cancel pending orders whose hold has expired and restock their sizes'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='List expired holds without changing anything',
        )

    def handle(self, *args, **options):
        now = timezone.now()

        if options.get('dry_run'):
            expired = Order.objects.filter(
                status=Order.STATUS_PENDING,
                hold_expires_at__isnull=False,
                hold_expires_at__lte=now,
            ).select_related('artwork').order_by('hold_expires_at')
            for order in expired:
                self.stdout.write(f"{order.order_number}  {order.artwork.title} / {order.size}  expired {order.hold_expires_at}")
            self.stdout.write(self.style.WARNING(f"{len(expired)} expired holds (dry run)"))
            return

        restored = restore_expired_holds(now=now)
        self.stdout.write(self.style.SUCCESS(f"Restored {restored} expired holds"))
