"""
Test utilities and factories for creating test data
"""
import random
import string
from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from atelier.catalog.models import Artwork, ArtworkSize
from atelier.orders.models import Order

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', is_staff=False, is_superuser=False):
        """Create a test user"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            is_staff=is_staff,
            is_superuser=is_superuser
        )

    @staticmethod
    def create_admin(username=None):
        return TestDataFactory.create_user(username=username, is_staff=True)

    @staticmethod
    def create_artwork(title=None, artwork_type=Artwork.TYPE_LIMITED, status=Artwork.STATUS_AVAILABLE,
                       sizes=None, material_cost=None, packaging_cost=None, labor_cost=None,
                       min_profit_margin=None):
        """
        Create an artwork with sizes. ``sizes`` maps label to
        ``(price, total_copies)``; the default is a single A3 size with
        three copies at 2000.
        """
        if not title:
            title = f'Artwork {TestDataFactory.random_string(6)}'
        artwork = Artwork.objects.create(
            slug=f'artwork-{TestDataFactory.random_string(8).lower()}',
            title=title,
            type=artwork_type,
            status=status,
            material_cost=material_cost,
            packaging_cost=packaging_cost,
            labor_cost=labor_cost,
            min_profit_margin=min_profit_margin,
        )
        if sizes is None:
            sizes = {'A3': (Decimal('2000.00'), 3)}
        for label, (price, copies) in sizes.items():
            ArtworkSize.objects.create(artwork=artwork, label=label, price=Decimal(str(price)), total_copies=copies)
        return artwork

    @staticmethod
    def create_auction(title=None, start=None, end=None, current_bid=None, min_increment=Decimal('100.00'),
                       sizes=None):
        """Create a live auction (started an hour ago, ending in a day by default)"""
        now = timezone.now()
        artwork = TestDataFactory.create_artwork(
            title=title,
            artwork_type=Artwork.TYPE_AUCTION,
            sizes=sizes if sizes is not None else {},
        )
        artwork.auction_start = start or now - timedelta(hours=1)
        artwork.auction_end = end or now + timedelta(days=1)
        artwork.current_bid = current_bid
        artwork.min_increment = min_increment
        artwork.save()
        return artwork

    @staticmethod
    def create_order(artwork, size='A3', status=Order.STATUS_PENDING, whatsapp='', price=None,
                     hold_expires_at=None, take_stock=True):
        """
        Create an order row directly. ``take_stock`` decrements the size so
        the row matches what checkout would have left behind.
        """
        size_row = ArtworkSize.objects.get(artwork=artwork, label=size)
        if take_stock:
            size_row.remaining -= 1
            size_row.save(update_fields=['remaining'])
        if status == Order.STATUS_PENDING and hold_expires_at is None:
            hold_expires_at = timezone.now() + timedelta(hours=24)
        return Order.objects.create(
            order_number=f'ORD-TEST-{TestDataFactory.random_string(8).upper()}',
            artwork=artwork,
            size=size,
            price=price if price is not None else size_row.price,
            whatsapp=whatsapp,
            status=status,
            hold_expires_at=hold_expires_at if status == Order.STATUS_PENDING else None,
        )


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()


class StorefrontTestCase(TestCase):
    """TestCase that starts every test with an empty settings cache"""

    def setUp(self):
        super().setUp()
        cache.clear()
