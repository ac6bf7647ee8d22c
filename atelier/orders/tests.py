"""
Comprehensive test suite for the orders app
Tests: checkout holds, margin and buyer-limit gates, confirmation into
production slots, refunds, cancellation, hold expiry and notifications
"""
from datetime import date, datetime, timedelta, timezone as dt_timezone
from decimal import Decimal
from io import StringIO
from unittest import mock
from zoneinfo import ZoneInfo

import requests
from django.core.exceptions import ValidationError
from django.core.management import call_command
from django.test import override_settings
from django.utils import timezone
from rest_framework import status

from atelier.catalog.inventory import decrement_stock, get_stock_level
from atelier.catalog.models import Artwork
from atelier.core.exceptions import (
    BuyerLimitExceeded, InsufficientMargin, InvalidTransition, NoCapacityHorizon, StockUnavailable,
)
from atelier.core.models import AnalyticsEvent, AuditLog
from atelier.core.test_utils import TestDataFactory, AuthenticatedAPIClient, StorefrontTestCase
from atelier.orders import notifications
from atelier.orders.buyer_limits import BuyerRateLimiter, normalize_contact, week_start_for
from atelier.orders.holds import restore_expired_holds
from atelier.orders.models import BuyerLimit, Order
from atelier.orders.services import OrderLifecycle
from atelier.production.models import ProductionSlot
from atelier.production.scheduler import CapacityScheduler

CAIRO = ZoneInfo('Africa/Cairo')


class OrderModelTests(StorefrontTestCase):

    def test_transitions(self):
        order = Order(status=Order.STATUS_PENDING)
        self.assertTrue(order.can_transition_to(Order.STATUS_CONFIRMED))
        self.assertTrue(order.can_transition_to(Order.STATUS_CANCELLED))
        self.assertFalse(order.can_transition_to(Order.STATUS_SHIPPED))

        order.status = Order.STATUS_SHIPPED
        self.assertFalse(order.can_transition_to(Order.STATUS_REFUNDED))

    def test_statuses_leading_to(self):
        self.assertEqual(Order.statuses_leading_to(Order.STATUS_CANCELLED), [Order.STATUS_PENDING])
        self.assertEqual(Order.statuses_leading_to(Order.STATUS_SHIPPED),
                         [Order.STATUS_CONFIRMED, Order.STATUS_SCHEDULED])
        self.assertEqual(Order.statuses_leading_to(Order.STATUS_REFUNDED),
                         [Order.STATUS_PENDING, Order.STATUS_CONFIRMED, Order.STATUS_SCHEDULED])
        self.assertEqual(Order.statuses_leading_to(Order.STATUS_PENDING), [])


class WeekStartTests(StorefrontTestCase):

    def test_week_starts_on_sunday_in_store_timezone(self):
        # Saturday night in UTC is already Sunday in Cairo
        moment = datetime(2026, 10, 17, 23, 30, tzinfo=dt_timezone.utc)
        self.assertEqual(week_start_for(moment, CAIRO), date(2026, 10, 18))
        self.assertEqual(week_start_for(moment, dt_timezone.utc), date(2026, 10, 11))

    def test_sunday_is_its_own_week_start(self):
        moment = datetime(2026, 10, 18, 12, 0, tzinfo=CAIRO)
        self.assertEqual(week_start_for(moment, CAIRO), date(2026, 10, 18))

    def test_midweek(self):
        moment = datetime(2026, 10, 21, 9, 0, tzinfo=CAIRO)
        self.assertEqual(week_start_for(moment, CAIRO), date(2026, 10, 18))

    def test_normalize_contact(self):
        self.assertEqual(normalize_contact('+20 155-149 (8838)'), '+201551498838')
        self.assertEqual(normalize_contact(None), '')


class BuyerRateLimiterTests(StorefrontTestCase):

    def setUp(self):
        super().setUp()
        self.limiter = BuyerRateLimiter()
        self.now = datetime(2026, 10, 20, 10, 0, tzinfo=CAIRO)

    def test_no_record_is_under_limit(self):
        self.assertTrue(self.limiter.check_limit('+201000000001', 2, now=self.now))

    def test_increment_upserts_weekly_counter(self):
        self.limiter.increment('+20 100 000 0001', now=self.now)
        self.limiter.increment('+201000000001', now=self.now)

        record = BuyerLimit.objects.get(contact='+201000000001')
        self.assertEqual(record.week_start, date(2026, 10, 18))
        self.assertEqual(record.confirmed_orders_count, 2)
        self.assertFalse(self.limiter.check_limit('+201000000001', 2, now=self.now))

    def test_new_week_resets_limit(self):
        self.limiter.increment('+201000000001', now=self.now)
        self.limiter.increment('+201000000001', now=self.now)
        next_week = self.now + timedelta(days=7)
        self.assertTrue(self.limiter.check_limit('+201000000001', 2, now=next_week))

    def test_consume_stops_at_cap(self):
        self.assertEqual(self.limiter.consume('+201000000001', 2, now=self.now).confirmed_orders_count, 1)
        self.assertEqual(self.limiter.consume('+201000000001', 2, now=self.now).confirmed_orders_count, 2)
        self.assertIsNone(self.limiter.consume('+201000000001', 2, now=self.now))
        self.assertEqual(BuyerLimit.objects.get(contact='+201000000001').confirmed_orders_count, 2)

    def test_consume_without_contact(self):
        self.assertIsNone(self.limiter.consume('', 2, now=self.now))
        self.assertFalse(BuyerLimit.objects.exists())


class CreateOrderTests(StorefrontTestCase):

    def setUp(self):
        super().setUp()
        self.lifecycle = OrderLifecycle()
        self.artwork = TestDataFactory.create_artwork(
            sizes={'S': (Decimal('2700.00'), 1), 'M': (Decimal('3200.00'), 4)},
            material_cost=Decimal('1200.00'),
            packaging_cost=Decimal('300.00'),
            labor_cost=Decimal('500.00'),
            min_profit_margin=Decimal('600.00'),
        )

    def test_create_order_holds_stock(self):
        now = timezone.now()
        order, payload = self.lifecycle.create_order(self.artwork.pk, 'M', '+20 100 000 0001', now=now)

        self.assertEqual(order.status, Order.STATUS_PENDING)
        self.assertEqual(order.price, Decimal('3200.00'))
        self.assertEqual(order.whatsapp, '+201000000001')
        self.assertEqual(order.hold_expires_at, now + timedelta(hours=24))
        self.assertTrue(order.order_number.startswith(f"ORD-{now.strftime('%Y%m%d')}-"))
        self.assertEqual(get_stock_level(self.artwork.pk, 'M'), 3)
        self.assertTrue(payload['url'].startswith(f"https://wa.me/{payload['phone']}?text="))
        self.assertIn(order.order_number, payload['text'])
        self.assertTrue(AnalyticsEvent.objects.filter(event_type='order_created', artwork=self.artwork).exists())
        self.assertTrue(AuditLog.objects.filter(action='order_create', object_reference=order.order_number).exists())

    def test_last_unit_single_winner(self):
        """Two buyers for the last unit: one pending order, one StockUnavailable"""
        first, _ = self.lifecycle.create_order(self.artwork.pk, 'S', '+201000000001')
        with self.assertRaises(StockUnavailable):
            self.lifecycle.create_order(self.artwork.pk, 'S', '+201000000002')

        self.assertEqual(first.status, Order.STATUS_PENDING)
        self.assertEqual(Order.objects.filter(artwork=self.artwork, size='S').count(), 1)
        self.assertEqual(get_stock_level(self.artwork.pk, 'S'), 0)

    def test_last_unit_taken_after_availability_check(self):
        """Another buyer takes the last unit between the sold-out check and the hold"""
        check_buyer_limit = self.lifecycle.check_buyer_limit

        def other_buyer_takes_unit(contact, now=None):
            check_buyer_limit(contact, now)
            self.assertTrue(decrement_stock(self.artwork.pk, 'S'))

        with mock.patch.object(self.lifecycle, 'check_buyer_limit', side_effect=other_buyer_takes_unit):
            with self.assertRaises(StockUnavailable) as ctx:
                self.lifecycle.create_order(self.artwork.pk, 'S', '+201000000002')

        self.assertEqual(ctx.exception.details['reason'], 'sold_out')
        self.assertFalse(Order.objects.exists())
        self.assertFalse(AnalyticsEvent.objects.filter(event_type='order_created').exists())
        self.assertEqual(get_stock_level(self.artwork.pk, 'S'), 0)

    def test_unparseable_declared_price(self):
        with self.assertRaises(ValidationError):
            self.lifecycle.create_order(self.artwork.pk, 'M', '', declared_price='lots')
        with self.assertRaises(ValidationError):
            self.lifecycle.create_order(self.artwork.pk, 'M', '', declared_price='NaN')
        self.assertEqual(get_stock_level(self.artwork.pk, 'M'), 4)

    def test_unknown_size(self):
        with self.assertRaises(StockUnavailable) as ctx:
            self.lifecycle.create_order(self.artwork.pk, 'XXL', '')
        self.assertEqual(ctx.exception.details['reason'], 'unknown_size')

    def test_unknown_artwork(self):
        with self.assertRaises(StockUnavailable):
            self.lifecycle.create_order(999999, 'S', '')

    def test_auction_artwork_cannot_be_ordered(self):
        auction = TestDataFactory.create_auction(sizes={'Original': (Decimal('20000.00'), 1)})
        with self.assertRaises(StockUnavailable) as ctx:
            self.lifecycle.create_order(auction.pk, 'Original', '')
        self.assertEqual(ctx.exception.details['reason'], 'auction')

    def test_margin_gate(self):
        """Costs sum to 2000 and the margin is 600: 2500 fails, 2700 passes"""
        with self.assertRaises(InsufficientMargin) as ctx:
            self.lifecycle.create_order(self.artwork.pk, 'M', '', declared_price=Decimal('2500'))
        self.assertEqual(ctx.exception.details['expected_profit'], Decimal('500.00'))
        self.assertEqual(get_stock_level(self.artwork.pk, 'M'), 4)

        order, _ = self.lifecycle.create_order(self.artwork.pk, 'M', '', declared_price=Decimal('2700'))
        self.assertEqual(order.price, Decimal('2700'))

    def test_buyer_over_weekly_limit_cannot_checkout(self):
        now = timezone.now()
        BuyerLimit.objects.create(
            contact='+201000000001',
            week_start=BuyerRateLimiter().current_week_start(now),
            confirmed_orders_count=2,
        )
        with self.assertRaises(BuyerLimitExceeded) as ctx:
            self.lifecycle.create_order(self.artwork.pk, 'M', '+201000000001', now=now)
        self.assertEqual(ctx.exception.details['limit'], 2)
        self.assertEqual(get_stock_level(self.artwork.pk, 'M'), 4)

    def test_checkout_without_contact_skips_limit(self):
        order, _ = self.lifecycle.create_order(self.artwork.pk, 'M', '')
        self.assertEqual(order.whatsapp, '')

    def test_order_creation_does_not_count_toward_limit(self):
        self.lifecycle.create_order(self.artwork.pk, 'M', '+201000000001')
        self.assertFalse(BuyerLimit.objects.exists())

    def test_failed_order_write_returns_stock(self):
        with mock.patch('atelier.orders.services.record_analytics_event', side_effect=RuntimeError('db down')):
            with self.assertRaises(RuntimeError):
                self.lifecycle.create_order(self.artwork.pk, 'S', '+201000000001')

        self.assertEqual(get_stock_level(self.artwork.pk, 'S'), 1)
        self.assertFalse(Order.objects.exists())
        self.artwork.refresh_from_db()
        self.assertEqual(self.artwork.status, Artwork.STATUS_AVAILABLE)


class ConfirmOrderTests(StorefrontTestCase):

    def setUp(self):
        super().setUp()
        self.lifecycle = OrderLifecycle()
        self.scheduler = CapacityScheduler()
        self.now = timezone.now()
        self.today = self.scheduler.today(self.now)
        self.artwork = TestDataFactory.create_artwork(sizes={'M': (Decimal('3200.00'), 10)})

    def test_confirm_into_todays_slot(self):
        order = TestDataFactory.create_order(self.artwork, size='M', whatsapp='+201000000001')
        order = self.lifecycle.confirm_order(order.pk, now=self.now)

        self.assertEqual(order.status, Order.STATUS_CONFIRMED)
        self.assertEqual(order.scheduled_start_date, self.today)
        self.assertEqual(order.estimated_completion_date, self.today + timedelta(days=5))
        self.assertEqual(order.queue_position, 1)
        self.assertIsNone(order.hold_expires_at)
        self.assertEqual(ProductionSlot.objects.get(date=self.today).capacity_reserved, 1)
        self.assertEqual(BuyerLimit.objects.get(contact='+201000000001').confirmed_orders_count, 1)

    def test_queue_position_follows_reservations(self):
        first = TestDataFactory.create_order(self.artwork, size='M')
        second = TestDataFactory.create_order(self.artwork, size='M')
        self.lifecycle.confirm_order(first.pk, now=self.now)
        second = self.lifecycle.confirm_order(second.pk, now=self.now)
        self.assertEqual(second.queue_position, 2)

    def test_full_day_schedules_next_free_day(self):
        """Capacity 3 with 3 reservations today: the 4th order is scheduled for tomorrow"""
        ProductionSlot.objects.create(date=self.today, capacity_total=3, capacity_reserved=3)
        order = TestDataFactory.create_order(self.artwork, size='M')

        order = self.lifecycle.confirm_order(order.pk, now=self.now)

        tomorrow = self.today + timedelta(days=1)
        self.assertEqual(order.status, Order.STATUS_SCHEDULED)
        self.assertEqual(order.scheduled_start_date, tomorrow)
        self.assertEqual(order.estimated_completion_date, tomorrow + timedelta(days=5))
        self.assertEqual(order.queue_position, 1)
        self.assertEqual(ProductionSlot.objects.get(date=self.today).capacity_reserved, 3)

    def test_skips_to_first_day_with_capacity(self):
        ProductionSlot.objects.create(date=self.today, capacity_total=3, capacity_reserved=3)
        ProductionSlot.objects.create(date=self.today + timedelta(days=1), capacity_total=3, capacity_reserved=3)
        ProductionSlot.objects.create(date=self.today + timedelta(days=2), capacity_total=3, capacity_reserved=1)
        order = TestDataFactory.create_order(self.artwork, size='M')

        order = self.lifecycle.confirm_order(order.pk, now=self.now)
        self.assertEqual(order.scheduled_start_date, self.today + timedelta(days=2))
        self.assertEqual(order.queue_position, 2)

    @override_settings(CAPACITY_HORIZON_DAYS=2)
    def test_no_capacity_in_horizon(self):
        ProductionSlot.objects.create(date=self.today, capacity_total=1, capacity_reserved=1)
        ProductionSlot.objects.create(date=self.today + timedelta(days=1), capacity_total=1, capacity_reserved=1)
        order = TestDataFactory.create_order(self.artwork, size='M')

        with self.assertRaises(NoCapacityHorizon) as ctx:
            self.lifecycle.confirm_order(order.pk, now=self.now)
        self.assertEqual(ctx.exception.details['horizon_days'], 2)
        order.refresh_from_db()
        self.assertEqual(order.status, Order.STATUS_PENDING)

    def test_buyer_at_weekly_cap_cannot_be_confirmed(self):
        """Cap 2 with 2 confirmed this week: a 3rd confirmation is rejected"""
        limiter = BuyerRateLimiter()
        limiter.increment('+201000000001', now=self.now)
        limiter.increment('+201000000001', now=self.now)
        order = TestDataFactory.create_order(self.artwork, size='M', whatsapp='+201000000001')

        with self.assertRaises(BuyerLimitExceeded):
            self.lifecycle.confirm_order(order.pk, now=self.now)
        self.assertFalse(ProductionSlot.objects.exists())
        self.assertEqual(BuyerLimit.objects.get(contact='+201000000001').confirmed_orders_count, 2)

    def test_overlapping_confirmation_cannot_exceed_weekly_cap(self):
        """Buyer at 1 of 2: a second confirmation landing after this one's check takes the last use"""
        limiter = BuyerRateLimiter()
        limiter.increment('+201000000001', now=self.now)
        order = TestDataFactory.create_order(self.artwork, size='M', whatsapp='+201000000001')
        check_buyer_limit = self.lifecycle.check_buyer_limit

        def other_confirmation_lands(contact, now=None):
            check_buyer_limit(contact, now)
            limiter.increment(contact, now=now)

        with mock.patch.object(self.lifecycle, 'check_buyer_limit', side_effect=other_confirmation_lands):
            with self.assertRaises(BuyerLimitExceeded) as ctx:
                self.lifecycle.confirm_order(order.pk, now=self.now)

        self.assertEqual(ctx.exception.details['limit'], 2)
        order.refresh_from_db()
        self.assertEqual(order.status, Order.STATUS_PENDING)
        self.assertFalse(ProductionSlot.objects.exists())

    def test_confirm_rechecks_margin_with_live_costs(self):
        order = TestDataFactory.create_order(self.artwork, size='M')
        Artwork.objects.filter(pk=self.artwork.pk).update(
            material_cost=Decimal('3000.00'), min_profit_margin=Decimal('500.00'),
        )
        with self.assertRaises(InsufficientMargin):
            self.lifecycle.confirm_order(order.pk, now=self.now)

    def test_confirm_twice_never_double_reserves(self):
        order = TestDataFactory.create_order(self.artwork, size='M')
        self.lifecycle.confirm_order(order.pk, now=self.now)

        with self.assertRaises(InvalidTransition) as ctx:
            self.lifecycle.confirm_order(order.pk, now=self.now)
        self.assertEqual(ctx.exception.details['from_status'], Order.STATUS_CONFIRMED)
        self.assertEqual(ProductionSlot.objects.get(date=self.today).capacity_reserved, 1)

    def test_confirm_cancelled_order(self):
        order = TestDataFactory.create_order(self.artwork, size='M', status=Order.STATUS_CANCELLED, take_stock=False)
        with self.assertRaises(InvalidTransition):
            self.lifecycle.confirm_order(order.pk, now=self.now)

    def test_confirm_notifies_after_commit(self):
        order = TestDataFactory.create_order(self.artwork, size='M')
        with mock.patch('atelier.orders.services.dispatch_order_notification') as dispatch:
            with self.captureOnCommitCallbacks(execute=True):
                self.lifecycle.confirm_order(order.pk, now=self.now)
        dispatch.assert_called_once()
        self.assertEqual(dispatch.call_args[0][1], 'order_confirmed')


class ShipRefundCancelTests(StorefrontTestCase):

    def setUp(self):
        super().setUp()
        self.lifecycle = OrderLifecycle()
        self.now = timezone.now()
        self.artwork = TestDataFactory.create_artwork(sizes={'M': (Decimal('3200.00'), 2)})

    def test_ship_confirmed_order(self):
        order = TestDataFactory.create_order(self.artwork, size='M')
        self.lifecycle.confirm_order(order.pk, now=self.now)
        order = self.lifecycle.ship_order(order.pk, now=self.now)
        self.assertEqual(order.status, Order.STATUS_SHIPPED)
        self.assertEqual(order.shipped_at, self.now)

    def test_pending_order_cannot_ship(self):
        order = TestDataFactory.create_order(self.artwork, size='M')
        with self.assertRaises(InvalidTransition):
            self.lifecycle.ship_order(order.pk, now=self.now)

    def test_refund_pending_returns_stock(self):
        order = TestDataFactory.create_order(self.artwork, size='M')
        self.assertEqual(get_stock_level(self.artwork.pk, 'M'), 1)

        order = self.lifecycle.refund_order(order.pk, now=self.now)
        self.assertEqual(order.status, Order.STATUS_REFUNDED)
        self.assertIsNone(order.hold_expires_at)
        self.assertEqual(get_stock_level(self.artwork.pk, 'M'), 2)

    def test_refund_confirmed_releases_slot(self):
        order = TestDataFactory.create_order(self.artwork, size='M')
        order = self.lifecycle.confirm_order(order.pk, now=self.now)
        start = order.scheduled_start_date

        self.lifecycle.refund_order(order.pk, now=self.now)
        self.assertEqual(ProductionSlot.objects.get(date=start).capacity_reserved, 0)
        self.assertEqual(get_stock_level(self.artwork.pk, 'M'), 1)

    def test_refund_shipped_order_rejected(self):
        order = TestDataFactory.create_order(self.artwork, size='M')
        self.lifecycle.confirm_order(order.pk, now=self.now)
        self.lifecycle.ship_order(order.pk, now=self.now)
        with self.assertRaises(InvalidTransition):
            self.lifecycle.refund_order(order.pk, now=self.now)

    def test_auction_sales_are_final(self):
        auction = TestDataFactory.create_auction(sizes={'Original': (Decimal('20000.00'), 1)})
        order = TestDataFactory.create_order(auction, size='Original', status=Order.STATUS_CONFIRMED)
        with self.assertRaises(InvalidTransition):
            self.lifecycle.refund_order(order.pk, now=self.now)

    def test_cancel_pending_returns_stock(self):
        order = TestDataFactory.create_order(self.artwork, size='M')
        order = self.lifecycle.cancel_order(order.pk, now=self.now)
        self.assertEqual(order.status, Order.STATUS_CANCELLED)
        self.assertEqual(get_stock_level(self.artwork.pk, 'M'), 2)

        with self.assertRaises(InvalidTransition):
            self.lifecycle.cancel_order(order.pk, now=self.now)
        self.assertEqual(get_stock_level(self.artwork.pk, 'M'), 2)


class RestoreExpiredHoldsTests(StorefrontTestCase):

    def setUp(self):
        super().setUp()
        self.now = timezone.now()
        self.artwork = TestDataFactory.create_artwork(sizes={'M': (Decimal('3200.00'), 3)})

    def test_expired_holds_are_cancelled_and_restocked(self):
        expired = TestDataFactory.create_order(self.artwork, size='M', hold_expires_at=self.now - timedelta(minutes=1))
        live = TestDataFactory.create_order(self.artwork, size='M', hold_expires_at=self.now + timedelta(hours=2))
        self.assertEqual(get_stock_level(self.artwork.pk, 'M'), 1)

        self.assertEqual(restore_expired_holds(now=self.now), 1)

        expired.refresh_from_db()
        live.refresh_from_db()
        self.assertEqual(expired.status, Order.STATUS_CANCELLED)
        self.assertEqual(expired.cancelled_at, self.now)
        self.assertEqual(live.status, Order.STATUS_PENDING)
        self.assertEqual(get_stock_level(self.artwork.pk, 'M'), 2)
        self.assertTrue(AuditLog.objects.filter(action='hold_expire', object_reference=expired.order_number).exists())

    def test_second_sweep_restores_nothing(self):
        TestDataFactory.create_order(self.artwork, size='M', hold_expires_at=self.now - timedelta(hours=1))
        self.assertEqual(restore_expired_holds(now=self.now), 1)
        self.assertEqual(restore_expired_holds(now=self.now), 0)
        self.assertEqual(get_stock_level(self.artwork.pk, 'M'), 3)

    def test_sweep_ignores_confirmed_orders(self):
        order = TestDataFactory.create_order(self.artwork, size='M', hold_expires_at=self.now - timedelta(hours=1))
        OrderLifecycle().confirm_order(order.pk, now=self.now)
        self.assertEqual(restore_expired_holds(now=self.now + timedelta(days=2)), 0)
        self.assertEqual(get_stock_level(self.artwork.pk, 'M'), 2)

    def test_expiry_leaves_buyer_counter_alone(self):
        limiter = BuyerRateLimiter()
        limiter.increment('+201000000001', now=self.now)
        TestDataFactory.create_order(
            self.artwork, size='M', whatsapp='+201000000001', hold_expires_at=self.now - timedelta(hours=1),
        )

        restore_expired_holds(now=self.now)
        self.assertEqual(BuyerLimit.objects.get(contact='+201000000001').confirmed_orders_count, 1)

    def test_management_command(self):
        TestDataFactory.create_order(self.artwork, size='M', hold_expires_at=timezone.now() - timedelta(hours=1))
        out = StringIO()

        call_command('restore_holds', '--dry-run', stdout=out)
        self.assertIn('1 expired holds', out.getvalue())
        self.assertEqual(get_stock_level(self.artwork.pk, 'M'), 2)

        call_command('restore_holds', stdout=out)
        self.assertIn('Restored 1 expired holds', out.getvalue())
        self.assertEqual(get_stock_level(self.artwork.pk, 'M'), 3)


class NotificationTests(StorefrontTestCase):

    def setUp(self):
        super().setUp()
        self.artwork = TestDataFactory.create_artwork(title='Nile at Dusk', sizes={'M': (Decimal('3200.00'), 2)})
        self.order = TestDataFactory.create_order(self.artwork, size='M')

    def test_whatsapp_payload(self):
        with mock.patch.object(notifications, 'STUDIO_WHATSAPP_NUMBER', '+20 155 149 8838'):
            payload = notifications.build_whatsapp_payload(self.order, language='en')
        self.assertEqual(payload['phone'], '201551498838')
        self.assertIn('Nile at Dusk', payload['text'])
        self.assertIn('3,200 EGP', payload['text'])
        self.assertTrue(payload['url'].startswith('https://wa.me/201551498838?text=Hello%2C'))

    def test_dispatch_skipped_without_webhook(self):
        with mock.patch.object(notifications, 'NOTIFICATION_WEBHOOK_URL', ''):
            with mock.patch.object(notifications.requests, 'post') as post:
                self.assertFalse(notifications.dispatch_order_notification(self.order, 'order_confirmed'))
        post.assert_not_called()

    def test_dispatch_posts_event(self):
        with mock.patch.object(notifications, 'NOTIFICATION_WEBHOOK_URL', 'https://hooks.example.com/orders'):
            with mock.patch.object(notifications.requests, 'post') as post:
                self.assertTrue(notifications.dispatch_order_notification(self.order, 'order_confirmed'))
        body = post.call_args.kwargs['json']
        self.assertEqual(body['event'], 'order_confirmed')
        self.assertEqual(body['order_number'], self.order.order_number)

    def test_dispatch_failure_is_swallowed(self):
        with mock.patch.object(notifications, 'NOTIFICATION_WEBHOOK_URL', 'https://hooks.example.com/orders'):
            with mock.patch.object(notifications.requests, 'post', side_effect=requests.exceptions.ConnectionError()):
                self.assertFalse(notifications.dispatch_order_notification(self.order, 'order_confirmed'))


class OrderAPITests(StorefrontTestCase):

    def setUp(self):
        super().setUp()
        self.client = AuthenticatedAPIClient()
        self.admin = TestDataFactory.create_admin()
        self.artwork = TestDataFactory.create_artwork(
            sizes={'S': (Decimal('2700.00'), 1)},
            material_cost=Decimal('2000.00'),
            min_profit_margin=Decimal('600.00'),
        )

    def test_create_order(self):
        data = {'artworkId': self.artwork.pk, 'size': 'S', 'buyerContact': '+201000000001', 'buyerName': 'Salma'}
        response = self.client.post('/api/v1/orders/', data, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['order']['status'], 'pending')
        self.assertIn('url', response.data['externalMessagePayload'])

    def test_create_order_sold_out(self):
        data = {'artworkId': self.artwork.pk, 'size': 'S'}
        self.client.post('/api/v1/orders/', data, format='json')
        response = self.client.post('/api/v1/orders/', data, format='json')

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['error'], 'StockUnavailable')
        self.assertEqual(response.data['details']['artwork_id'], self.artwork.pk)

    def test_create_order_margin_rejected(self):
        data = {'artworkId': self.artwork.pk, 'size': 'S', 'price': '2500.00'}
        response = self.client.post('/api/v1/orders/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_422_UNPROCESSABLE_ENTITY)
        self.assertEqual(response.data['details'], {'expected_profit': '500.00', 'min_profit_margin': '600.00'})

    def test_create_order_validates_body(self):
        response = self.client.post('/api/v1/orders/', {'size': 'S'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('artworkId', response.data)

    def test_lookup_by_whatsapp(self):
        self.client.post('/api/v1/orders/', {'artworkId': self.artwork.pk, 'size': 'S', 'buyerContact': '+20 100 000 0001'}, format='json')
        response = self.client.get('/api/v1/orders/lookup/', {'whatsapp': '+201000000001'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertNotIn('whatsapp', response.data[0])

    def test_confirm_requires_admin(self):
        order = TestDataFactory.create_order(self.artwork, size='S')
        response = self.client.post(f'/api/v1/admin/orders/{order.pk}/confirm/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.post(f'/api/v1/admin/orders/{order.pk}/confirm/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_confirm_and_repeat(self):
        order = TestDataFactory.create_order(self.artwork, size='S')
        self.client.authenticate_user(self.admin)

        response = self.client.post(f'/api/v1/admin/orders/{order.pk}/confirm/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'confirmed')
        self.assertEqual(response.data['queue_position'], 1)
        self.assertEqual(AuditLog.objects.get(action='order_confirm').user, self.admin)

        response = self.client.post(f'/api/v1/admin/orders/{order.pk}/confirm/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['error'], 'InvalidTransition')

    def test_confirm_unknown_order(self):
        self.client.authenticate_user(self.admin)
        response = self.client.post('/api/v1/admin/orders/999999/confirm/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_admin_order_list_filters(self):
        TestDataFactory.create_order(self.artwork, size='S', whatsapp='+201000000001')
        other = TestDataFactory.create_artwork(sizes={'M': (Decimal('1000.00'), 2)})
        TestDataFactory.create_order(other, size='M', status=Order.STATUS_SHIPPED)
        self.client.authenticate_user(self.admin)

        response = self.client.get('/api/v1/admin/orders/', {'status': 'pending'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)

        response = self.client.get('/api/v1/admin/orders/', {'search': '1000000001'})
        self.assertEqual(response.data['count'], 1)

    def test_restore_holds_with_cron_token(self):
        TestDataFactory.create_order(self.artwork, size='S', hold_expires_at=timezone.now() - timedelta(hours=1))

        with override_settings(CRON_TOKEN='sweep-secret'):
            response = self.client.post('/api/v1/restore-holds/', HTTP_X_CRON_TOKEN='wrong')
            self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

            response = self.client.post('/api/v1/restore-holds/', HTTP_X_CRON_TOKEN='sweep-secret')
            self.assertEqual(response.status_code, status.HTTP_200_OK)
            self.assertEqual(response.data, {'restoredCount': 1})

            response = self.client.post('/api/v1/restore-holds/', HTTP_X_CRON_TOKEN='sweep-secret')
            self.assertEqual(response.data, {'restoredCount': 0})

    def test_restore_holds_as_admin(self):
        self.client.authenticate_user(self.admin)
        response = self.client.post('/api/v1/restore-holds/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, {'restoredCount': 0})
