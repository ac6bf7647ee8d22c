"""
Test suite for the auctions app
Tests: bid validation, minimum increments, anti-sniping extension and
auction close
"""
from datetime import timedelta
from decimal import Decimal
from unittest import mock

from django.test import override_settings
from django.utils import timezone
from rest_framework import status

from atelier.auctions.models import Bid
from atelier.auctions.services import close_auction, effective_min_increment, minimum_next_bid, place_bid
from atelier.catalog.models import Artwork
from atelier.core.exceptions import AuctionNotActive, BidTooLow, InvalidAuction, InvalidTransition
from atelier.core.models import AnalyticsEvent, AuditLog
from atelier.core.test_utils import TestDataFactory, AuthenticatedAPIClient, StorefrontTestCase


class MinimumIncrementTests(StorefrontTestCase):

    def test_explicit_increment(self):
        auction = TestDataFactory.create_auction(min_increment=Decimal('250.00'))
        self.assertEqual(effective_min_increment(auction), Decimal('250.00'))

    def test_default_is_five_percent_of_top_price(self):
        auction = TestDataFactory.create_auction(
            min_increment=None,
            sizes={'Original': (Decimal('20000.00'), 1), 'Print': (Decimal('3010.00'), 5)},
        )
        self.assertEqual(effective_min_increment(auction), Decimal('1000'))

    @override_settings(AUCTION_DEFAULT_MIN_INCREMENT=750)
    def test_default_without_sizes(self):
        auction = TestDataFactory.create_auction(min_increment=None)
        self.assertEqual(effective_min_increment(auction), Decimal('750'))

    def test_minimum_next_bid_without_bids(self):
        auction = TestDataFactory.create_auction(min_increment=Decimal('500.00'))
        self.assertEqual(minimum_next_bid(auction), Decimal('500.00'))


class PlaceBidTests(StorefrontTestCase):

    def setUp(self):
        super().setUp()
        self.now = timezone.now()
        self.auction = TestDataFactory.create_auction(
            current_bid=Decimal('10000.00'),
            min_increment=Decimal('500.00'),
            start=self.now - timedelta(days=1),
            end=self.now + timedelta(days=1),
        )

    def test_bid_must_exceed_current_plus_increment(self):
        """current_bid 10000, increment 500: 10500 fails, 10600 wins"""
        with self.assertRaises(BidTooLow) as ctx:
            place_bid(self.auction.pk, Decimal('10500'), '+201000000001', now=self.now)
        self.assertEqual(ctx.exception.details['must_exceed'], Decimal('10500.00'))

        bid = place_bid(self.auction.pk, Decimal('10600'), '+20 100 000 0001', 'Karim', now=self.now)

        self.auction.refresh_from_db()
        self.assertEqual(self.auction.current_bid, Decimal('10600.00'))
        self.assertEqual(bid.whatsapp, '+201000000001')
        self.assertFalse(bid.is_winner)
        self.assertTrue(AnalyticsEvent.objects.filter(event_type='bid_placed', artwork=self.auction).exists())

    def test_each_bid_raises_the_bar(self):
        place_bid(self.auction.pk, Decimal('11000'), '', now=self.now)
        with self.assertRaises(BidTooLow):
            place_bid(self.auction.pk, Decimal('11400'), '', now=self.now)
        place_bid(self.auction.pk, Decimal('11501'), '', now=self.now)
        self.assertEqual(Bid.objects.filter(artwork=self.auction).count(), 2)

    def test_first_bid_on_empty_auction(self):
        auction = TestDataFactory.create_auction(min_increment=Decimal('500.00'))
        with self.assertRaises(BidTooLow):
            place_bid(auction.pk, Decimal('500'), '')
        place_bid(auction.pk, Decimal('500.01'), '')

    def test_bid_on_non_auction(self):
        artwork = TestDataFactory.create_artwork()
        with self.assertRaises(InvalidAuction):
            place_bid(artwork.pk, Decimal('99999'), '', now=self.now)

    def test_bid_outside_window(self):
        with self.assertRaises(AuctionNotActive):
            place_bid(self.auction.pk, Decimal('20000'), '', now=self.now + timedelta(days=2))
        with self.assertRaises(AuctionNotActive):
            place_bid(self.auction.pk, Decimal('20000'), '', now=self.now - timedelta(days=2))

    def test_bid_on_closed_auction(self):
        close_auction(self.auction.pk)
        with self.assertRaises(AuctionNotActive):
            place_bid(self.auction.pk, Decimal('20000'), '', now=self.now)

    def test_late_bid_extends_auction(self):
        """A bid 30 seconds before the end pushes it out by exactly 120 seconds"""
        end = self.now + timedelta(seconds=30)
        Artwork.objects.filter(pk=self.auction.pk).update(auction_end=end)

        place_bid(self.auction.pk, Decimal('10600'), '', now=self.now)

        self.auction.refresh_from_db()
        self.assertEqual(self.auction.auction_end, end + timedelta(seconds=120))

    def test_extension_uses_locked_end(self):
        """Back-to-back late bids each extend from the end the previous bid left"""
        end = self.now + timedelta(seconds=30)
        Artwork.objects.filter(pk=self.auction.pk).update(auction_end=end)

        place_bid(self.auction.pk, Decimal('10600'), '', now=self.now)
        place_bid(self.auction.pk, Decimal('11200'), '', now=self.now + timedelta(seconds=100))

        self.auction.refresh_from_db()
        self.assertEqual(self.auction.auction_end, end + timedelta(seconds=240))

    def test_early_bid_does_not_extend(self):
        place_bid(self.auction.pk, Decimal('10600'), '', now=self.now)
        self.auction.refresh_from_db()
        self.assertEqual(self.auction.auction_end, self.now + timedelta(days=1))

    def test_stale_high_bid_is_rejected(self):
        """A bid validated against an outdated current_bid loses the compare-and-set"""
        def concurrent_bid_lands(artwork):
            Artwork.objects.filter(pk=artwork.pk).update(current_bid=Decimal('15000.00'))
            return Decimal('500.00')

        with mock.patch('atelier.auctions.services.effective_min_increment', side_effect=concurrent_bid_lands):
            with self.assertRaises(BidTooLow) as ctx:
                place_bid(self.auction.pk, Decimal('10600'), '', now=self.now)

        self.assertEqual(ctx.exception.details['current_bid'], Decimal('15000.00'))
        self.assertFalse(Bid.objects.exists())


class CloseAuctionTests(StorefrontTestCase):

    def setUp(self):
        super().setUp()
        self.auction = TestDataFactory.create_auction(min_increment=Decimal('100.00'))

    def test_highest_bid_wins(self):
        place_bid(self.auction.pk, Decimal('1000'), '+201000000001')
        top = place_bid(self.auction.pk, Decimal('1500'), '+201000000002')

        artwork, winner = close_auction(self.auction.pk)

        self.assertEqual(winner.pk, top.pk)
        self.assertEqual(artwork.status, Artwork.STATUS_AUCTION_CLOSED)
        self.assertEqual(list(Bid.objects.filter(is_winner=True)), [top])
        self.assertTrue(AuditLog.objects.filter(action='auction_close').exists())

    def test_tie_goes_to_earliest_bid(self):
        first = Bid.objects.create(artwork=self.auction, amount=Decimal('2000.00'))
        Bid.objects.create(artwork=self.auction, amount=Decimal('2000.00'))

        _, winner = close_auction(self.auction.pk)
        self.assertEqual(winner.pk, first.pk)

    def test_close_without_bids(self):
        artwork, winner = close_auction(self.auction.pk)
        self.assertIsNone(winner)
        self.assertEqual(artwork.status, Artwork.STATUS_AUCTION_CLOSED)

    def test_close_twice(self):
        close_auction(self.auction.pk)
        with self.assertRaises(InvalidTransition):
            close_auction(self.auction.pk)

    def test_close_non_auction(self):
        artwork = TestDataFactory.create_artwork()
        with self.assertRaises(InvalidAuction):
            close_auction(artwork.pk)

    def test_winner_notified_after_commit(self):
        place_bid(self.auction.pk, Decimal('1000'), '+201000000001')
        with mock.patch('atelier.auctions.services.dispatch_auction_winner_notification') as dispatch:
            with self.captureOnCommitCallbacks(execute=True):
                close_auction(self.auction.pk)
        dispatch.assert_called_once()


class AuctionAPITests(StorefrontTestCase):

    def setUp(self):
        super().setUp()
        self.client = AuthenticatedAPIClient()
        self.auction = TestDataFactory.create_auction(
            current_bid=Decimal('10000.00'), min_increment=Decimal('500.00'),
        )

    def test_place_bid(self):
        data = {'artworkId': self.auction.pk, 'amount': '10600.00', 'bidderContact': '+201000000001', 'bidderName': 'Karim'}
        response = self.client.post('/api/v1/bids/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['amount'], '10600.00')
        self.assertNotIn('whatsapp', response.data)

    def test_bid_too_low_response(self):
        data = {'artworkId': self.auction.pk, 'amount': '10500.00'}
        response = self.client.post('/api/v1/bids/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_422_UNPROCESSABLE_ENTITY)
        self.assertEqual(response.data['error'], 'BidTooLow')
        self.assertEqual(response.data['details'], {
            'current_bid': '10000.00', 'min_increment': '500.00', 'must_exceed': '10500.00',
        })

    def test_artwork_bids_highest_first(self):
        place_bid(self.auction.pk, Decimal('10600'), '')
        place_bid(self.auction.pk, Decimal('11200'), '')
        response = self.client.get(f'/api/v1/artworks/{self.auction.pk}/bids/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([bid['amount'] for bid in response.data], ['11200.00', '10600.00'])

    def test_close_auction_requires_admin(self):
        response = self.client.post(f'/api/v1/admin/artworks/{self.auction.pk}/close-auction/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_admin_close_auction(self):
        place_bid(self.auction.pk, Decimal('10600'), '+201000000001')
        self.client.authenticate_user(TestDataFactory.create_admin())

        response = self.client.post(f'/api/v1/admin/artworks/{self.auction.pk}/close-auction/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['artwork']['status'], 'auction_closed')
        self.assertEqual(response.data['winner']['whatsapp'], '+201000000001')

        response = self.client.get('/api/v1/admin/bids/', {'winners': 'true'})
        self.assertEqual(response.data['count'], 1)
