"""
Test suite for the catalog app
Tests: atomic stock counters, the stock hold context manager, sold status
tracking, catalog reads and inventory alerts
"""
from decimal import Decimal

from django.db import IntegrityError, transaction
from rest_framework import status

from atelier.core.exceptions import StockUnavailable
from atelier.core.test_utils import TestDataFactory, AuthenticatedAPIClient, StorefrontTestCase
from atelier.catalog.inventory import (
    decrement_stock, increment_stock, stock_hold, get_stock_level, low_stock_sizes,
)
from atelier.catalog.models import Artwork, ArtworkSize


class ArtworkModelTests(StorefrontTestCase):

    def test_new_size_starts_fully_stocked(self):
        artwork = TestDataFactory.create_artwork(sizes={'A2': (Decimal('3500.00'), 5)})
        size = ArtworkSize.objects.get(artwork=artwork, label='A2')
        self.assertEqual(size.remaining, 5)

    def test_total_cost_treats_missing_costs_as_zero(self):
        artwork = TestDataFactory.create_artwork(material_cost=Decimal('1200.00'), labor_cost=Decimal('300.00'))
        self.assertEqual(artwork.total_cost(), Decimal('1500.00'))
        self.assertEqual(artwork.expected_profit(Decimal('2000.00')), Decimal('500.00'))

    def test_remaining_cannot_exceed_total_copies(self):
        artwork = TestDataFactory.create_artwork()
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                ArtworkSize.objects.filter(artwork=artwork, label='A3').update(remaining=10)

    def test_size_labels_unique_per_artwork(self):
        artwork = TestDataFactory.create_artwork()
        with self.assertRaises(IntegrityError):
            with transaction.atomic():
                ArtworkSize.objects.create(artwork=artwork, label='A3', price=Decimal('100.00'))


class StockCounterTests(StorefrontTestCase):

    def setUp(self):
        super().setUp()
        self.artwork = TestDataFactory.create_artwork(sizes={'S': (Decimal('1500.00'), 2)})

    def test_decrement_until_sold_out(self):
        self.assertTrue(decrement_stock(self.artwork.pk, 'S'))
        self.assertTrue(decrement_stock(self.artwork.pk, 'S'))
        self.assertFalse(decrement_stock(self.artwork.pk, 'S'))
        self.assertEqual(get_stock_level(self.artwork.pk, 'S'), 0)

    def test_decrement_more_than_remaining_does_not_touch_row(self):
        self.assertFalse(decrement_stock(self.artwork.pk, 'S', amount=3))
        self.assertEqual(get_stock_level(self.artwork.pk, 'S'), 2)

    def test_decrement_unknown_size(self):
        self.assertFalse(decrement_stock(self.artwork.pk, 'XL'))
        self.assertIsNone(get_stock_level(self.artwork.pk, 'XL'))

    def test_increment_never_exceeds_total_copies(self):
        self.assertFalse(increment_stock(self.artwork.pk, 'S'))
        self.assertEqual(get_stock_level(self.artwork.pk, 'S'), 2)

        decrement_stock(self.artwork.pk, 'S')
        self.assertTrue(increment_stock(self.artwork.pk, 'S'))
        self.assertEqual(get_stock_level(self.artwork.pk, 'S'), 2)

    def test_last_unit_goes_to_one_buyer(self):
        """Two buyers that both saw remaining=1 race for the last unit"""
        ArtworkSize.objects.filter(artwork=self.artwork, label='S').update(remaining=1)
        results = [decrement_stock(self.artwork.pk, 'S'), decrement_stock(self.artwork.pk, 'S')]
        self.assertEqual(results, [True, False])
        self.assertEqual(get_stock_level(self.artwork.pk, 'S'), 0)

    def test_sold_status_follows_stock(self):
        decrement_stock(self.artwork.pk, 'S')
        decrement_stock(self.artwork.pk, 'S')
        self.artwork.refresh_from_db()
        self.assertEqual(self.artwork.status, Artwork.STATUS_SOLD)

        increment_stock(self.artwork.pk, 'S')
        self.artwork.refresh_from_db()
        self.assertEqual(self.artwork.status, Artwork.STATUS_AVAILABLE)

    def test_coming_soon_artwork_keeps_status(self):
        artwork = TestDataFactory.create_artwork(
            status=Artwork.STATUS_COMING_SOON, sizes={'S': (Decimal('900.00'), 1)},
        )
        decrement_stock(artwork.pk, 'S')
        artwork.refresh_from_db()
        self.assertEqual(artwork.status, Artwork.STATUS_COMING_SOON)


class StockHoldTests(StorefrontTestCase):

    def setUp(self):
        super().setUp()
        self.artwork = TestDataFactory.create_artwork(sizes={'S': (Decimal('1500.00'), 1)})

    def test_hold_keeps_unit_on_success(self):
        with stock_hold(self.artwork.pk, 'S'):
            pass
        self.assertEqual(get_stock_level(self.artwork.pk, 'S'), 0)

    def test_hold_returns_unit_when_block_fails(self):
        with self.assertRaises(ValueError):
            with stock_hold(self.artwork.pk, 'S'):
                self.assertEqual(get_stock_level(self.artwork.pk, 'S'), 0)
                raise ValueError('order write failed')
        self.assertEqual(get_stock_level(self.artwork.pk, 'S'), 1)

    def test_hold_on_sold_out_size(self):
        decrement_stock(self.artwork.pk, 'S')
        with self.assertRaises(StockUnavailable) as ctx:
            with stock_hold(self.artwork.pk, 'S'):
                self.fail('block must not run without a unit')
        self.assertEqual(ctx.exception.details['reason'], 'sold_out')
        self.assertEqual(get_stock_level(self.artwork.pk, 'S'), 0)


class CatalogAPITests(StorefrontTestCase):

    def setUp(self):
        super().setUp()
        self.client = AuthenticatedAPIClient()
        self.artwork = TestDataFactory.create_artwork(
            title='Nile at Dusk',
            sizes={'A3': (Decimal('2000.00'), 3), 'A2': (Decimal('3500.00'), 1)},
            material_cost=Decimal('800.00'),
        )
        self.auction = TestDataFactory.create_auction(title='Night Market', current_bid=Decimal('10000.00'))

    def test_artwork_list_is_public(self):
        response = self.client.get('/api/v1/artworks/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 2)

    def test_artwork_list_type_filter(self):
        response = self.client.get('/api/v1/artworks/', {'type': 'auction'})
        self.assertEqual([item['title'] for item in response.data], ['Night Market'])

    def test_artwork_detail_renders_sizes_mapping(self):
        response = self.client.get(f'/api/v1/artworks/{self.artwork.slug}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['sizes']['A2'], {'price': '3500.00', 'total_copies': 1, 'remaining': 1})
        self.assertIsNone(response.data['minimum_next_bid'])
        self.assertNotIn('material_cost', response.data)

    def test_staff_see_cost_fields(self):
        self.client.authenticate_user(TestDataFactory.create_admin())
        response = self.client.get(f'/api/v1/artworks/{self.artwork.slug}/')
        self.assertEqual(response.data['material_cost'], '800.00')

    def test_auction_detail_includes_minimum_next_bid(self):
        response = self.client.get(f'/api/v1/artworks/{self.auction.slug}/')
        self.assertEqual(Decimal(response.data['minimum_next_bid']), Decimal('10100.00'))

    def test_list_prices_auctions_from_prefetched_sizes(self):
        for title in ('Harbour Lights', 'Old Souq'):
            TestDataFactory.create_auction(
                title=title, min_increment=None, sizes={'Original': (Decimal('20000.00'), 1)},
            )
        with self.assertNumQueries(2):
            response = self.client.get('/api/v1/artworks/', {'type': 'auction'})
        bids = {item['title']: item['minimum_next_bid'] for item in response.data}
        self.assertEqual(Decimal(bids['Harbour Lights']), Decimal('1000'))

    def test_unknown_slug(self):
        response = self.client.get('/api/v1/artworks/no-such-piece/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_inventory_alerts_require_admin(self):
        response = self.client.get('/api/v1/admin/inventory-alerts/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.get('/api/v1/admin/inventory-alerts/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_inventory_alerts_list_low_and_sold_out_sizes(self):
        decrement_stock(self.artwork.pk, 'A2')
        self.client.authenticate_user(TestDataFactory.create_admin())

        response = self.client.get('/api/v1/admin/inventory-alerts/', {'threshold': 1})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['label'], 'A2')
        self.assertEqual(response.data[0]['level'], 'out_of_stock')

    def test_low_stock_sizes_skip_auctions(self):
        TestDataFactory.create_auction(sizes={'Original': (Decimal('20000.00'), 1)})
        labels = [size.label for size in low_stock_sizes(1)]
        self.assertEqual(labels, ['A2'])
