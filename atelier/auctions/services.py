"""
Auction bidding.

Bids on one artwork are serialized by locking the artwork row, and
``current_bid`` is then swapped with a compare-and-set UPDATE so a bid can
never be accepted against a stale high bid. The anti-sniping extension is
computed from the ``auction_end`` read under that lock.
"""
import logging
from datetime import timedelta
from decimal import Decimal, ROUND_HALF_UP

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from atelier.catalog.models import Artwork
from atelier.core.exceptions import AuctionNotActive, BidTooLow, InvalidAuction, InvalidTransition
from atelier.core.utils import create_audit_log, record_analytics_event
from atelier.orders.buyer_limits import normalize_contact
from atelier.orders.notifications import dispatch_auction_winner_notification
from .models import Bid

logger = logging.getLogger(__name__)

DEFAULT_INCREMENT_RATE = Decimal('0.05')


def effective_min_increment(artwork):
    """
    ``min_increment`` if set, else 5% of the highest listed size price
    rounded to whole units, else the AUCTION_DEFAULT_MIN_INCREMENT setting.
    """
    if artwork.min_increment is not None:
        return artwork.min_increment
    # Reads through prefetch_related('sizes') when the caller loaded it
    top_price = max((size.price for size in artwork.sizes.all()), default=None)
    if top_price:
        return (top_price * DEFAULT_INCREMENT_RATE).quantize(Decimal('1'), rounding=ROUND_HALF_UP)
    return Decimal(str(getattr(settings, 'AUCTION_DEFAULT_MIN_INCREMENT', 500)))


def minimum_next_bid(artwork):
    """The amount a new bid must strictly exceed"""
    current_bid = artwork.current_bid or Decimal('0.00')
    return current_bid + effective_min_increment(artwork)


def is_auction_active(artwork, now):
    if artwork.status == Artwork.STATUS_AUCTION_CLOSED:
        return False
    if artwork.auction_start is None or artwork.auction_end is None:
        return False
    return artwork.auction_start <= now <= artwork.auction_end


def place_bid(artwork_id, amount, bidder_contact='', bidder_name='', now=None):
    """
    Record a bid and raise ``current_bid`` to it.

    Bids landing inside the last ANTI_SNIPING_WINDOW_SECONDS of the auction
    push ``auction_end`` out by ANTI_SNIPING_EXTENSION_SECONDS.
    """
    now = now or timezone.now()
    amount = Decimal(str(amount))
    window = timedelta(seconds=getattr(settings, 'ANTI_SNIPING_WINDOW_SECONDS', 60))
    extension = timedelta(seconds=getattr(settings, 'ANTI_SNIPING_EXTENSION_SECONDS', 120))

    with transaction.atomic():
        artwork = Artwork.objects.select_for_update().filter(pk=artwork_id).first()
        if artwork is None or not artwork.is_auction:
            raise InvalidAuction(artwork_id=artwork_id)
        if not is_auction_active(artwork, now):
            raise AuctionNotActive(auction_start=artwork.auction_start, auction_end=artwork.auction_end)

        min_increment = effective_min_increment(artwork)
        current_bid = artwork.current_bid or Decimal('0.00')
        must_exceed = current_bid + min_increment
        if amount <= must_exceed:
            raise BidTooLow(
                f"Bid must exceed {must_exceed}",
                current_bid=current_bid,
                min_increment=min_increment,
                must_exceed=must_exceed,
            )

        new_end = artwork.auction_end
        if artwork.auction_end - now < window:
            new_end = artwork.auction_end + extension

        # Compare-and-set against the high bid read above
        swapped = Artwork.objects.filter(pk=artwork.pk, current_bid=artwork.current_bid).update(
            current_bid=amount, auction_end=new_end, updated_at=now,
        )
        if not swapped:
            artwork.refresh_from_db(fields=['current_bid'])
            current_bid = artwork.current_bid or Decimal('0.00')
            raise BidTooLow(
                'A higher bid was placed first',
                current_bid=current_bid,
                min_increment=min_increment,
                must_exceed=current_bid + min_increment,
            )

        bid = Bid.objects.create(
            artwork=artwork,
            bidder_name=bidder_name or '',
            whatsapp=normalize_contact(bidder_contact),
            amount=amount,
        )
        record_analytics_event('bid_placed', artwork=artwork, meta={'bid_id': bid.pk, 'amount': str(amount)})

    if new_end != artwork.auction_end:
        logger.info("Bid on %s inside the closing window, auction extended to %s", artwork.slug, new_end)
    logger.info("Accepted bid %s on %s", amount, artwork.slug)
    artwork.current_bid = amount
    artwork.auction_end = new_end
    return bid


def close_auction(artwork_id, request=None):
    """
    Close an auction and mark the highest bid (earliest on ties) as the
    winner. Returns ``(artwork, winning_bid)``; the bid is None when nobody
    bid.
    """
    with transaction.atomic():
        artwork = Artwork.objects.select_for_update().filter(pk=artwork_id).first()
        if artwork is None or not artwork.is_auction:
            raise InvalidAuction(artwork_id=artwork_id)
        if artwork.status == Artwork.STATUS_AUCTION_CLOSED:
            raise InvalidTransition(
                'Auction is already closed',
                from_status=artwork.status, to_status=Artwork.STATUS_AUCTION_CLOSED,
            )

        winner = Bid.objects.filter(artwork=artwork).order_by('-amount', 'created_at', 'id').first()
        if winner is not None:
            Bid.objects.filter(pk=winner.pk).update(is_winner=True)
            winner.is_winner = True
            transaction.on_commit(lambda: dispatch_auction_winner_notification(winner))

        artwork.status = Artwork.STATUS_AUCTION_CLOSED
        artwork.save(update_fields=['status', 'updated_at'])

    logger.info("Closed auction %s, winner %s", artwork.slug, winner.pk if winner else None)
    create_audit_log(
        request=request,
        action='auction_close',
        model_name='Artwork',
        object_id=artwork.pk,
        object_name=artwork.title,
        object_reference=artwork.slug,
        changes={
            'winning_bid': str(winner.amount) if winner else None,
            'winner_bid_id': winner.pk if winner else None,
        },
    )
    return artwork, winner
