"""
Test suite for the core app
Tests: error payloads, bounded store settings, audit logging, analytics
tracking and JWT login
"""
from datetime import date
from decimal import Decimal
from unittest import mock

from rest_framework import status

from atelier.core.exceptions import BidTooLow, InvalidSetting, StockUnavailable
from atelier.core.models import AnalyticsEvent, AuditLog, Setting
from atelier.core.store_settings import BUYER_WEEKLY_LIMIT, DAILY_CAPACITY, get_store_settings
from atelier.core.test_utils import TestDataFactory, AuthenticatedAPIClient, StorefrontTestCase
from atelier.core.utils import create_audit_log


class StorefrontErrorTests(StorefrontTestCase):

    def test_payload_shape(self):
        error = BidTooLow(current_bid=Decimal('10000.00'), min_increment=Decimal('500.00'),
                          must_exceed=Decimal('10500.00'))
        self.assertEqual(error.status_code, 422)
        self.assertEqual(error.as_dict(), {
            'error': 'BidTooLow',
            'message': BidTooLow.default_message,
            'details': {'current_bid': '10000.00', 'min_increment': '500.00', 'must_exceed': '10500.00'},
        })

    def test_dates_render_as_iso(self):
        error = StockUnavailable('gone', artwork_id=3, size='S', since=date(2026, 10, 18))
        self.assertEqual(error.as_dict()['details'], {'artwork_id': 3, 'size': 'S', 'since': '2026-10-18'})
        self.assertEqual(str(error), 'gone')


class StoreSettingsTests(StorefrontTestCase):

    def test_defaults(self):
        store = get_store_settings()
        self.assertEqual(store.daily_capacity(), 3)
        self.assertEqual(store.buyer_weekly_limit(), 2)
        self.assertEqual(store.hold_duration().total_seconds(), 24 * 3600)
        self.assertEqual(store.production_lead_time().days, 5)
        self.assertEqual(store.capacity_horizon_days(), 30)

    def test_bounds(self):
        self.assertEqual(DAILY_CAPACITY.validate('7'), 7)
        for value in (0, 21, '2.5', 'three', None, True):
            with self.assertRaises(InvalidSetting):
                DAILY_CAPACITY.validate(value)

    def test_invalid_setting_details(self):
        with self.assertRaises(InvalidSetting) as ctx:
            BUYER_WEEKLY_LIMIT.validate(50)
        self.assertEqual(ctx.exception.details, {'key': 'buyer_weekly_limit', 'min': 1, 'max': 20})

    def test_corrupt_stored_value_falls_back_to_default(self):
        Setting.objects.create(key='daily_capacity', value='99')
        self.assertEqual(get_store_settings().daily_capacity(), 3)

    def test_write_persists_and_invalidates_cache(self):
        store = get_store_settings()
        self.assertEqual(store.buyer_weekly_limit(), 2)
        store.set_buyer_weekly_limit(4)
        self.assertEqual(Setting.objects.get(key='buyer_weekly_limit').value, '4')
        self.assertEqual(store.buyer_weekly_limit(), 4)

    def test_direct_row_edit_invalidates_cache(self):
        store = get_store_settings()
        self.assertEqual(store.daily_capacity(), 3)
        Setting.objects.create(key='daily_capacity', value='6')
        self.assertEqual(store.daily_capacity(), 6)


class AuditLogTests(StorefrontTestCase):

    def test_create_audit_log_with_user(self):
        user = TestDataFactory.create_admin()
        log = create_audit_log(action='order_confirm', model_name='Order', object_id=7,
                               user=user, object_reference='ORD-1')
        self.assertEqual(log.user, user)
        self.assertEqual(log.object_id, '7')

    def test_missing_fields_are_skipped(self):
        self.assertIsNone(create_audit_log(action='order_confirm'))
        self.assertFalse(AuditLog.objects.exists())

    def test_failures_never_propagate(self):
        with mock.patch('atelier.core.utils.AuditLog.objects.create', side_effect=RuntimeError('db down')):
            self.assertIsNone(create_audit_log(action='order_ship', model_name='Order', object_id=1))


class CoreAPITests(StorefrontTestCase):

    def setUp(self):
        super().setUp()
        self.client = AuthenticatedAPIClient()
        self.admin = TestDataFactory.create_admin()
        self.artwork = TestDataFactory.create_artwork()

    def test_login_returns_tokens(self):
        TestDataFactory.create_user(username='studio', password='s3cret-pass')
        response = self.client.post('/api/v1/auth/login/', {'username': 'studio', 'password': 's3cret-pass'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)

        response = self.client.post('/api/v1/auth/refresh/', {'refresh': response.data['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_track_page_view(self):
        data = {'eventType': 'page_view', 'artworkId': self.artwork.pk, 'meta': {'path': '/gallery'}}
        response = self.client.post('/api/v1/analytics/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(AnalyticsEvent.objects.get().artwork, self.artwork)

    def test_server_side_events_cannot_be_reported(self):
        response = self.client.post('/api/v1/analytics/', {'eventType': 'order_created'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(AnalyticsEvent.objects.exists())

    def test_analytics_summary(self):
        for _ in range(4):
            AnalyticsEvent.objects.create(event_type='page_view')
        AnalyticsEvent.objects.create(event_type='order_created', artwork=self.artwork)
        AnalyticsEvent.objects.create(event_type='bid_placed')
        self.client.authenticate_user(self.admin)

        response = self.client.get('/api/v1/admin/analytics/')
        self.assertEqual(response.data, {'pageViews': 4, 'orders': 1, 'bids': 1, 'conversionRate': 25.0})

    def test_analytics_summary_without_views(self):
        self.client.authenticate_user(self.admin)
        response = self.client.get('/api/v1/admin/analytics/')
        self.assertEqual(response.data['conversionRate'], 0)

    def test_update_buyer_weekly_limit(self):
        self.client.authenticate_user(self.admin)
        response = self.client.patch('/api/v1/admin/settings/', {'buyerWeeklyLimit': 3}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['buyerWeeklyLimit'], 3)
        self.assertTrue(AuditLog.objects.filter(action='setting_update', object_id='buyer_weekly_limit').exists())

        response = self.client.patch('/api/v1/admin/settings/', {'buyerWeeklyLimit': 0}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'InvalidSetting')

    def test_audit_log_list(self):
        create_audit_log(action='order_ship', model_name='Order', object_id=1, object_reference='ORD-1')
        create_audit_log(action='order_refund', model_name='Order', object_id=2, object_reference='ORD-2')
        self.client.authenticate_user(self.admin)

        response = self.client.get('/api/v1/admin/audit-logs/', {'action': 'order_refund'})
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['object_reference'], 'ORD-2')
