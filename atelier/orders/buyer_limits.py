"""
Weekly purchase caps per buyer contact.

Counters are keyed by the start of the buyer's week in the store timezone.
``week_start_for`` is the only place that boundary is computed, so order
creation and confirmation always agree on which week an order falls in.
"""
import logging
import re
from datetime import timedelta

from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from atelier.core.store_settings import get_store_settings
from .models import BuyerLimit

logger = logging.getLogger(__name__)

CONTACT_STRIP_RE = re.compile(r'[\s\-().]')


def normalize_contact(contact):
    """Canonical form of a WhatsApp number used as the limiter key"""
    if not contact:
        return ''
    return CONTACT_STRIP_RE.sub('', str(contact))


def week_start_for(moment, tz):
    """
    Date of the Sunday that starts the week containing ``moment`` in
    timezone ``tz``. Naive datetimes are taken to be in ``tz`` already.
    """
    if timezone.is_naive(moment):
        local = moment
    else:
        local = moment.astimezone(tz)
    day = local.date()
    # Monday is 0 and Sunday is 6
    days_since_sunday = (day.weekday() + 1) % 7
    return day - timedelta(days=days_since_sunday)


class BuyerRateLimiter:

    def __init__(self, store_settings=None):
        self.store_settings = store_settings or get_store_settings()

    def current_week_start(self, now=None):
        return week_start_for(now or timezone.now(), self.store_settings.store_timezone())

    def confirmed_count(self, contact, now=None):
        contact = normalize_contact(contact)
        return BuyerLimit.objects.filter(
            contact=contact,
            week_start=self.current_week_start(now),
        ).values_list('confirmed_orders_count', flat=True).first() or 0

    def check_limit(self, contact, max_orders=None, now=None):
        """True while the buyer is still under the weekly cap"""
        if max_orders is None:
            max_orders = self.store_settings.buyer_weekly_limit()
        return self.confirmed_count(contact, now) < max_orders

    def _ensure_week_row(self, contact, week_start):
        if BuyerLimit.objects.filter(contact=contact, week_start=week_start).exists():
            return
        try:
            with transaction.atomic():
                BuyerLimit.objects.create(contact=contact, week_start=week_start, confirmed_orders_count=0)
        except IntegrityError:
            # Created concurrently
            pass

    def increment(self, contact, now=None):
        """Count one more confirmed order for the buyer's current week"""
        contact = normalize_contact(contact)
        if not contact:
            return None
        week_start = self.current_week_start(now)
        self._ensure_week_row(contact, week_start)

        BuyerLimit.objects.filter(contact=contact, week_start=week_start).update(
            confirmed_orders_count=F('confirmed_orders_count') + 1,
            updated_at=timezone.now(),
        )
        record = BuyerLimit.objects.get(contact=contact, week_start=week_start)
        logger.info("Buyer %s has %s confirmed orders in week of %s", contact, record.confirmed_orders_count, week_start)
        return record

    def consume(self, contact, max_orders=None, now=None):
        """
        Count one more confirmed order only while the buyer is under
        ``max_orders``. The comparison and the increment are one UPDATE, so
        overlapping confirmations for the same buyer cannot pass the cap.

        Returns the updated record, or None when the cap is already reached.
        """
        contact = normalize_contact(contact)
        if not contact:
            return None
        if max_orders is None:
            max_orders = self.store_settings.buyer_weekly_limit()
        week_start = self.current_week_start(now)
        self._ensure_week_row(contact, week_start)

        updated = BuyerLimit.objects.filter(
            contact=contact,
            week_start=week_start,
            confirmed_orders_count__lt=max_orders,
        ).update(
            confirmed_orders_count=F('confirmed_orders_count') + 1,
            updated_at=timezone.now(),
        )
        if not updated:
            logger.info("Buyer %s is already at %s confirmed orders in week of %s", contact, max_orders, week_start)
            return None
        record = BuyerLimit.objects.get(contact=contact, week_start=week_start)
        logger.info("Buyer %s has %s confirmed orders in week of %s", contact, record.confirmed_orders_count, week_start)
        return record
