"""
Order lifecycle: checkout holds, admin confirmation into production slots,
shipping, refunds and manual cancellation.

Status changes are claimed with conditional UPDATEs (``WHERE status IN
...``) inside a transaction, so a transition can only happen once even when
an admin action races the hold expiry sweep.
"""
import logging
import uuid
from decimal import Decimal, InvalidOperation

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from atelier.catalog.inventory import increment_stock, stock_hold
from atelier.catalog.models import Artwork, ArtworkSize
from atelier.core.exceptions import (
    BuyerLimitExceeded, InsufficientMargin, InvalidTransition, NoCapacityHorizon, StockUnavailable,
)
from atelier.core.store_settings import get_store_settings
from atelier.core.utils import create_audit_log, record_analytics_event
from atelier.production.scheduler import CapacityScheduler
from .buyer_limits import BuyerRateLimiter, normalize_contact
from .models import Order
from .notifications import build_whatsapp_payload, dispatch_order_notification

logger = logging.getLogger(__name__)


def generate_order_number(now=None):
    now = now or timezone.now()
    order_number = f"ORD-{now.strftime('%Y%m%d')}-{str(uuid.uuid4())[:8].upper()}"
    while Order.objects.filter(order_number=order_number).exists():
        order_number = f"ORD-{now.strftime('%Y%m%d')}-{str(uuid.uuid4())[:8].upper()}"
    return order_number


def claim_transition(order, from_statuses, to_status, now, **fields):
    """
    Move ``order`` to ``to_status`` only if its stored status is still one
    of ``from_statuses``. Returns False when another request got there first.
    """
    updated = Order.objects.filter(pk=order.pk, status__in=from_statuses).update(
        status=to_status, updated_at=now, **fields
    )
    if not updated:
        return False
    order.status = to_status
    order.updated_at = now
    for name, value in fields.items():
        setattr(order, name, value)
    return True


class OrderLifecycle:

    def __init__(self, store_settings=None, scheduler=None, limiter=None):
        self.store_settings = store_settings or get_store_settings()
        self.scheduler = scheduler or CapacityScheduler(self.store_settings)
        self.limiter = limiter or BuyerRateLimiter(self.store_settings)

    # Business gates

    def check_margin(self, artwork, price):
        """Hard gate: price minus declared costs must reach the minimum margin"""
        expected_profit = artwork.expected_profit(price)
        minimum = artwork.min_profit_margin or Decimal('0.00')
        if expected_profit < minimum:
            logger.info("Margin gate rejected %s for artwork %s: profit %s < %s",
                        price, artwork.pk, expected_profit, minimum)
            raise InsufficientMargin(
                f"Expected profit {expected_profit} is below the required {minimum}",
                expected_profit=expected_profit,
                min_profit_margin=minimum,
            )
        return expected_profit

    def check_buyer_limit(self, contact, now=None):
        if not contact:
            return
        limit = self.store_settings.buyer_weekly_limit()
        if not self.limiter.check_limit(contact, limit, now):
            logger.info("Buyer %s reached the weekly limit of %s", contact, limit)
            raise self._limit_exceeded(limit, now)

    def _limit_exceeded(self, limit, now):
        return BuyerLimitExceeded(
            f"Buyer already has {limit} confirmed orders this week",
            limit=limit,
            week_start=self.limiter.current_week_start(now),
        )

    # Checkout

    def create_order(self, artwork_id, size, buyer_contact=None, declared_price=None,
                     buyer_name='', payment_method='', language='ar', now=None):
        """
        Hold one unit of ``size`` for a WhatsApp checkout.

        Returns ``(order, whatsapp_payload)``. Validation happens before any
        stock is touched; once the unit is taken, any failure writing the
        order returns it.
        """
        now = now or timezone.now()

        artwork = Artwork.objects.filter(pk=artwork_id).first()
        if artwork is None:
            raise StockUnavailable('Artwork not found', artwork_id=artwork_id, size=size, reason='unknown_artwork')
        if artwork.is_auction:
            raise StockUnavailable('Auction pieces are sold through bidding', artwork_id=artwork.pk, size=size, reason='auction')
        if artwork.status != Artwork.STATUS_AVAILABLE:
            raise StockUnavailable('Artwork is not available for sale', artwork_id=artwork.pk, size=size, reason=artwork.status)

        size_row = ArtworkSize.objects.filter(artwork=artwork, label=size).first()
        if size_row is None:
            raise StockUnavailable('Unknown size', artwork_id=artwork.pk, size=size, reason='unknown_size')
        if size_row.remaining == 0:
            raise StockUnavailable('The requested size is sold out', artwork_id=artwork.pk, size=size, reason='sold_out')

        if declared_price is None:
            price = size_row.price
        else:
            try:
                price = Decimal(str(declared_price))
            except InvalidOperation:
                price = None
            if price is None or not price.is_finite():
                raise ValidationError({'declared_price': 'A valid number is required.'})
        self.check_margin(artwork, price)

        contact = normalize_contact(buyer_contact)
        self.check_buyer_limit(contact, now)

        with stock_hold(artwork.pk, size):
            with transaction.atomic():
                order = Order.objects.create(
                    order_number=generate_order_number(now),
                    artwork=artwork,
                    size=size,
                    price=price,
                    buyer_name=buyer_name or '',
                    whatsapp=contact,
                    payment_method=payment_method or '',
                    status=Order.STATUS_PENDING,
                    hold_expires_at=now + self.store_settings.hold_duration(),
                )
                record_analytics_event(
                    'order_created',
                    artwork=artwork,
                    meta={'order_id': order.pk, 'order_number': order.order_number, 'size': size},
                )

        logger.info("Order %s holds %s/%s until %s", order.order_number, artwork.slug, size, order.hold_expires_at)
        create_audit_log(
            action='order_create',
            model_name='Order',
            object_id=order.pk,
            object_name=artwork.title,
            object_reference=order.order_number,
            changes={'size': size, 'price': str(price), 'whatsapp': contact},
        )
        return order, build_whatsapp_payload(order, language)

    # Admin transitions

    def confirm_order(self, order_id, request=None, now=None):
        """
        Confirm a pending order into production: today's slot if one is
        free (``confirmed``), else the first free day in the horizon
        (``scheduled``).
        """
        now = now or timezone.now()
        with transaction.atomic():
            order = Order.objects.select_for_update().select_related('artwork').get(pk=order_id)
            if not order.can_transition_to(Order.STATUS_CONFIRMED):
                raise InvalidTransition(
                    f"Cannot confirm an order that is {order.status}",
                    from_status=order.status, to_status=Order.STATUS_CONFIRMED,
                )

            # Costs may have changed since checkout
            self.check_margin(order.artwork, order.price)
            self.check_buyer_limit(order.whatsapp, now)
            if order.whatsapp:
                limit = self.store_settings.buyer_weekly_limit()
                # Rolls back with the transaction if the confirmation fails below
                if self.limiter.consume(order.whatsapp, limit, now) is None:
                    raise self._limit_exceeded(limit, now)

            today = self.scheduler.today(now)
            if self.scheduler.get_available_capacity(today) > 0:
                slot = self.scheduler.reserve_capacity(today, order.pk)
                new_status = Order.STATUS_CONFIRMED
            else:
                horizon = self.store_settings.capacity_horizon_days()
                candidate = self.scheduler.get_next_available_slot(horizon, start=today)
                if candidate is None:
                    raise NoCapacityHorizon(
                        f"No production capacity in the next {horizon} days",
                        horizon_days=horizon,
                    )
                slot = self.scheduler.reserve_capacity(candidate.date, order.pk)
                new_status = Order.STATUS_SCHEDULED

            claimed = claim_transition(
                order, Order.statuses_leading_to(new_status), new_status, now,
                hold_expires_at=None,
                scheduled_start_date=slot.date,
                estimated_completion_date=slot.date + self.store_settings.production_lead_time(),
                queue_position=slot.capacity_reserved,
                confirmed_at=now,
            )
            if not claimed:
                # Rolls back the slot reservation with the transaction
                raise InvalidTransition(
                    'Order changed status while being confirmed',
                    from_status=Order.objects.values_list('status', flat=True).get(pk=order.pk),
                    to_status=new_status,
                )

            transaction.on_commit(lambda: dispatch_order_notification(order, 'order_confirmed'))

        logger.info("Order %s %s for %s (position %s)",
                    order.order_number, order.status, order.scheduled_start_date, order.queue_position)
        create_audit_log(
            request=request,
            action='order_confirm' if order.status == Order.STATUS_CONFIRMED else 'order_schedule',
            model_name='Order',
            object_id=order.pk,
            object_name=order.artwork.title,
            object_reference=order.order_number,
            changes={
                'status': order.status,
                'scheduled_start_date': order.scheduled_start_date.isoformat(),
                'queue_position': order.queue_position,
            },
        )
        return order

    def ship_order(self, order_id, request=None, now=None):
        now = now or timezone.now()
        with transaction.atomic():
            order = Order.objects.select_for_update().select_related('artwork').get(pk=order_id)
            if not claim_transition(order, Order.statuses_leading_to(Order.STATUS_SHIPPED), Order.STATUS_SHIPPED, now, shipped_at=now):
                raise InvalidTransition(
                    f"Cannot ship an order that is {order.status}",
                    from_status=order.status, to_status=Order.STATUS_SHIPPED,
                )
            transaction.on_commit(lambda: dispatch_order_notification(order, 'order_shipped'))

        create_audit_log(
            request=request,
            action='order_ship',
            model_name='Order',
            object_id=order.pk,
            object_name=order.artwork.title,
            object_reference=order.order_number,
            changes={'status': order.status},
        )
        return order

    def refund_order(self, order_id, request=None, now=None):
        """
        Refund any non-terminal order. A pending refund returns the held
        unit; a confirmed or scheduled refund frees its production start.
        Auction sales are final.
        """
        now = now or timezone.now()
        with transaction.atomic():
            order = Order.objects.select_for_update().select_related('artwork').get(pk=order_id)
            previous_status = order.status
            if order.artwork.is_auction:
                raise InvalidTransition(
                    'Auction sales are final',
                    from_status=previous_status, to_status=Order.STATUS_REFUNDED,
                )
            claimed = claim_transition(
                order,
                Order.statuses_leading_to(Order.STATUS_REFUNDED),
                Order.STATUS_REFUNDED,
                now,
                refunded_at=now,
                hold_expires_at=None,
            )
            if not claimed:
                raise InvalidTransition(
                    f"Cannot refund an order that is {previous_status}",
                    from_status=previous_status, to_status=Order.STATUS_REFUNDED,
                )

            if previous_status == Order.STATUS_PENDING:
                increment_stock(order.artwork_id, order.size)
            elif order.scheduled_start_date:
                self.scheduler.release_capacity(order.scheduled_start_date)
            transaction.on_commit(lambda: dispatch_order_notification(order, 'order_refunded'))

        logger.info("Order %s refunded from %s", order.order_number, previous_status)
        create_audit_log(
            request=request,
            action='order_refund',
            model_name='Order',
            object_id=order.pk,
            object_name=order.artwork.title,
            object_reference=order.order_number,
            changes={'from_status': previous_status, 'status': order.status},
        )
        return order

    def cancel_order(self, order_id, request=None, now=None):
        """Manually release a pending hold before it expires"""
        now = now or timezone.now()
        with transaction.atomic():
            order = Order.objects.select_for_update().select_related('artwork').get(pk=order_id)
            claimed = claim_transition(
                order, Order.statuses_leading_to(Order.STATUS_CANCELLED), Order.STATUS_CANCELLED, now,
                cancelled_at=now, hold_expires_at=None,
            )
            if not claimed:
                raise InvalidTransition(
                    f"Cannot cancel an order that is {order.status}",
                    from_status=order.status, to_status=Order.STATUS_CANCELLED,
                )
            increment_stock(order.artwork_id, order.size)
            transaction.on_commit(lambda: dispatch_order_notification(order, 'order_cancelled'))

        create_audit_log(
            request=request,
            action='order_cancel',
            model_name='Order',
            object_id=order.pk,
            object_name=order.artwork.title,
            object_reference=order.order_number,
            changes={'status': order.status},
        )
        return order


def orders_for_contact(contact):
    contact = normalize_contact(contact)
    if not contact:
        return Order.objects.none()
    return Order.objects.select_related('artwork').filter(whatsapp=contact)
