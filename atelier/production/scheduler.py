"""
Production capacity scheduling.

Each calendar day has a finite number of production starts. Confirmed
orders reserve a start on the first day with spare capacity; the slot
counters are only ever changed by conditional UPDATEs so two admins
confirming at once can never overbook a day.
"""
import logging
from collections import namedtuple
from datetime import timedelta

from django.db import IntegrityError, transaction
from django.db.models import F, PositiveIntegerField, Value
from django.db.models.functions import Greatest
from django.utils import timezone

from atelier.core.exceptions import ReservationFailed
from atelier.core.store_settings import get_store_settings
from .models import ProductionSlot

logger = logging.getLogger(__name__)

SlotAvailability = namedtuple('SlotAvailability', ['date', 'position'])


class CapacityScheduler:

    def __init__(self, store_settings=None):
        self.store_settings = store_settings or get_store_settings()

    def today(self, now=None):
        return timezone.localdate(now or timezone.now(), self.store_settings.store_timezone())

    def get_available_capacity(self, day):
        """Spare production starts on ``day``"""
        slot = ProductionSlot.objects.filter(date=day).values('capacity_total', 'capacity_reserved').first()
        if slot is None:
            return self.store_settings.daily_capacity()
        return max(0, slot['capacity_total'] - slot['capacity_reserved'])

    def reserve_capacity(self, day, order_id=None):
        """
        Take one production start on ``day`` and return the updated slot.

        The first reservation for a date creates the row; afterwards the
        counter is incremented only while it is below ``capacity_total``.
        Raises ReservationFailed when the day is already full.
        """
        if not ProductionSlot.objects.filter(date=day).exists():
            try:
                with transaction.atomic():
                    slot = ProductionSlot.objects.create(
                        date=day,
                        capacity_total=self.store_settings.daily_capacity(),
                        capacity_reserved=1,
                    )
                logger.info("Opened production slot %s for order %s", day, order_id)
                return slot
            except IntegrityError:
                # Another request created the row first
                pass

        updated = ProductionSlot.objects.filter(
            date=day,
            capacity_reserved__lt=F('capacity_total'),
        ).update(capacity_reserved=F('capacity_reserved') + 1)
        if not updated:
            logger.info("Production slot %s is full, reservation for order %s rejected", day, order_id)
            raise ReservationFailed(date=day)

        slot = ProductionSlot.objects.get(date=day)
        logger.info("Reserved production slot %s for order %s (%s/%s)",
                    day, order_id, slot.capacity_reserved, slot.capacity_total)
        return slot

    def release_capacity(self, day):
        """Give a production start back, e.g. when a scheduled order is refunded"""
        updated = ProductionSlot.objects.filter(
            date=day,
            capacity_reserved__gt=0,
        ).update(capacity_reserved=F('capacity_reserved') - 1)
        if not updated:
            logger.warning("No reservation to release on production slot %s", day)
        return updated == 1

    def get_next_available_slot(self, horizon_days=None, start=None):
        """
        First day from ``start`` (default today, inclusive) with spare
        capacity, with the 1-based queue position an order would take.
        Returns None if the whole horizon is booked.
        """
        if horizon_days is None:
            horizon_days = self.store_settings.capacity_horizon_days()
        start = start or self.today()
        end = start + timedelta(days=horizon_days - 1)
        slots = {
            slot.date: slot
            for slot in ProductionSlot.objects.filter(date__gte=start, date__lte=end)
        }

        for offset in range(horizon_days):
            day = start + timedelta(days=offset)
            slot = slots.get(day)
            if slot is None:
                return SlotAvailability(day, 1)
            if slot.available > 0:
                return SlotAvailability(day, slot.capacity_reserved + 1)
        return None

    def capacity_overview(self, days, start=None):
        """Per-day capacity figures for the admin dashboard"""
        start = start or self.today()
        end = start + timedelta(days=days - 1)
        slots = {
            slot.date: slot
            for slot in ProductionSlot.objects.filter(date__gte=start, date__lte=end)
        }
        daily_capacity = self.store_settings.daily_capacity()

        overview = []
        for offset in range(days):
            day = start + timedelta(days=offset)
            slot = slots.get(day)
            if slot is None:
                overview.append({'date': day, 'available': daily_capacity, 'reserved': 0, 'total': daily_capacity})
            else:
                overview.append({
                    'date': day,
                    'available': slot.available,
                    'reserved': slot.capacity_reserved,
                    'total': slot.capacity_total,
                })
        return overview

    def apply_daily_capacity(self, value, now=None):
        """
        Store a new daily capacity and resize today's and future slots.
        A slot never shrinks below what is already reserved.
        """
        capacity = self.store_settings.set_daily_capacity(value)
        resized = ProductionSlot.objects.filter(date__gte=self.today(now)).update(
            capacity_total=Greatest(Value(capacity), F('capacity_reserved'), output_field=PositiveIntegerField()),
        )
        logger.info("Daily capacity set to %s, %s upcoming slots resized", capacity, resized)
        return capacity
