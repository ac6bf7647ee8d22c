"""
Test suite for the production app
Tests: lazy slot creation, no-overbooking reservations, next-slot search,
capacity overview and the daily capacity setting
"""
from datetime import date, timedelta

from django.db import IntegrityError, transaction
from rest_framework import status

from atelier.core.exceptions import InvalidSetting, ReservationFailed
from atelier.core.models import AuditLog
from atelier.core.store_settings import get_store_settings
from atelier.core.test_utils import TestDataFactory, AuthenticatedAPIClient, StorefrontTestCase
from atelier.production.models import ProductionSlot
from atelier.production.scheduler import CapacityScheduler

DAY = date(2026, 11, 2)


class ProductionSlotModelTests(StorefrontTestCase):

    def test_available(self):
        slot = ProductionSlot(date=DAY, capacity_total=3, capacity_reserved=1)
        self.assertEqual(slot.available, 2)

    def test_reserved_cannot_exceed_total(self):
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                ProductionSlot.objects.create(date=DAY, capacity_total=2, capacity_reserved=3)


class CapacitySchedulerTests(StorefrontTestCase):

    def setUp(self):
        super().setUp()
        self.scheduler = CapacityScheduler()

    def test_missing_slot_uses_daily_capacity(self):
        self.assertEqual(self.scheduler.get_available_capacity(DAY), 3)
        get_store_settings().set_daily_capacity(5)
        self.assertEqual(self.scheduler.get_available_capacity(DAY), 5)

    def test_first_reservation_creates_slot(self):
        slot = self.scheduler.reserve_capacity(DAY, order_id=1)
        self.assertEqual((slot.capacity_total, slot.capacity_reserved), (3, 1))
        self.assertEqual(self.scheduler.get_available_capacity(DAY), 2)

    def test_reservations_stop_at_capacity(self):
        for order_id in range(3):
            self.scheduler.reserve_capacity(DAY, order_id=order_id)

        with self.assertRaises(ReservationFailed) as ctx:
            self.scheduler.reserve_capacity(DAY, order_id=4)
        self.assertEqual(ctx.exception.details['date'], DAY)
        self.assertEqual(ProductionSlot.objects.get(date=DAY).capacity_reserved, 3)

    def test_release_capacity(self):
        self.scheduler.reserve_capacity(DAY)
        self.assertTrue(self.scheduler.release_capacity(DAY))
        self.assertFalse(self.scheduler.release_capacity(DAY))
        self.assertEqual(ProductionSlot.objects.get(date=DAY).capacity_reserved, 0)

    def test_next_slot_is_today_when_free(self):
        candidate = self.scheduler.get_next_available_slot(30, start=DAY)
        self.assertEqual(candidate, (DAY, 1))

    def test_next_slot_skips_full_days(self):
        ProductionSlot.objects.create(date=DAY, capacity_total=2, capacity_reserved=2)
        ProductionSlot.objects.create(date=DAY + timedelta(days=1), capacity_total=2, capacity_reserved=1)

        candidate = self.scheduler.get_next_available_slot(30, start=DAY)
        self.assertEqual(candidate.date, DAY + timedelta(days=1))
        self.assertEqual(candidate.position, 2)

    def test_next_slot_exhausted_horizon(self):
        for offset in range(3):
            ProductionSlot.objects.create(date=DAY + timedelta(days=offset), capacity_total=1, capacity_reserved=1)
        self.assertIsNone(self.scheduler.get_next_available_slot(3, start=DAY))
        self.assertEqual(self.scheduler.get_next_available_slot(4, start=DAY).date, DAY + timedelta(days=3))

    def test_capacity_overview(self):
        ProductionSlot.objects.create(date=DAY + timedelta(days=1), capacity_total=4, capacity_reserved=3)
        overview = self.scheduler.capacity_overview(3, start=DAY)

        self.assertEqual([day['date'] for day in overview], [DAY + timedelta(days=n) for n in range(3)])
        self.assertEqual(overview[0], {'date': DAY, 'available': 3, 'reserved': 0, 'total': 3})
        self.assertEqual(overview[1]['available'], 1)
        self.assertEqual(overview[1]['total'], 4)

    def test_apply_daily_capacity_never_drops_below_reserved(self):
        today = self.scheduler.today()
        ProductionSlot.objects.create(date=today, capacity_total=3, capacity_reserved=2)
        ProductionSlot.objects.create(date=today + timedelta(days=1), capacity_total=3, capacity_reserved=0)
        ProductionSlot.objects.create(date=today - timedelta(days=1), capacity_total=3, capacity_reserved=3)

        self.scheduler.apply_daily_capacity(1)

        self.assertEqual(ProductionSlot.objects.get(date=today).capacity_total, 2)
        self.assertEqual(ProductionSlot.objects.get(date=today + timedelta(days=1)).capacity_total, 1)
        self.assertEqual(ProductionSlot.objects.get(date=today - timedelta(days=1)).capacity_total, 3)
        self.assertEqual(get_store_settings().daily_capacity(), 1)

    def test_apply_daily_capacity_bounds(self):
        with self.assertRaises(InvalidSetting):
            self.scheduler.apply_daily_capacity(21)
        self.assertEqual(get_store_settings().daily_capacity(), 3)


class CapacityAPITests(StorefrontTestCase):

    def setUp(self):
        super().setUp()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_admin())

    def test_overview_defaults_to_two_weeks(self):
        response = self.client.get('/api/v1/admin/capacity/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 14)
        self.assertEqual(set(response.data[0]), {'date', 'available', 'reserved', 'total'})

    def test_overview_days_bounds(self):
        self.assertEqual(len(self.client.get('/api/v1/admin/capacity/', {'days': 90}).data), 90)
        for days in ('0', '91', 'soon'):
            response = self.client.get('/api/v1/admin/capacity/', {'days': days})
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_daily_capacity(self):
        response = self.client.post('/api/v1/admin/capacity/settings/', {'dailyCapacity': 5}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, {'dailyCapacity': 5})
        self.assertEqual(get_store_settings().daily_capacity(), 5)

        log = AuditLog.objects.get(action='setting_update')
        self.assertEqual(log.changes, {'old_value': 3, 'new_value': 5})

    def test_daily_capacity_out_of_bounds(self):
        for value in (0, 21):
            response = self.client.post('/api/v1/admin/capacity/settings/', {'dailyCapacity': value}, format='json')
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(get_store_settings().daily_capacity(), 3)

    def test_capacity_requires_staff(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.get('/api/v1/admin/capacity/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
