"""
Atomic stock operations for artwork sizes.

Every change to ``ArtworkSize.remaining`` is a single conditional UPDATE
built from F() expressions, so concurrent buyers of the last unit cannot
both succeed and a compensating increment can never push the counter
above ``total_copies``.
"""
import logging
from contextlib import contextmanager

from django.db.models import Exists, F, OuterRef

from atelier.core.exceptions import StockUnavailable
from .models import Artwork, ArtworkSize

logger = logging.getLogger(__name__)


def decrement_stock(artwork_id, size, amount=1):
    """
    Take ``amount`` units of ``size``. Returns False, without touching the
    row, when the size does not exist or fewer than ``amount`` units remain.
    """
    if amount < 1:
        return False
    updated = ArtworkSize.objects.filter(
        artwork_id=artwork_id,
        label=size,
        remaining__gte=amount,
    ).update(remaining=F('remaining') - amount)
    if updated:
        refresh_sold_status(artwork_id)
    return updated == 1


def increment_stock(artwork_id, size, amount=1):
    """Compensating action: give ``amount`` units of ``size`` back"""
    if amount < 1:
        return False
    updated = ArtworkSize.objects.filter(
        artwork_id=artwork_id,
        label=size,
        remaining__lte=F('total_copies') - amount,
    ).update(remaining=F('remaining') + amount)
    if updated:
        refresh_sold_status(artwork_id)
    else:
        logger.error(
            "Stock increment rejected for artwork %s size %s (unknown size or already at total_copies)",
            artwork_id, size,
        )
    return updated == 1


@contextmanager
def stock_hold(artwork_id, size):
    """
    Reserve one unit for the duration of the block.

    Raises StockUnavailable if the unit cannot be taken. If the block
    raises, the unit is returned before the exception propagates.
    """
    if not decrement_stock(artwork_id, size):
        raise StockUnavailable(
            'The requested size is sold out',
            artwork_id=artwork_id, size=size, reason='sold_out',
        )
    try:
        yield
    except BaseException:
        logger.warning("Releasing held unit of artwork %s size %s after a failed order write", artwork_id, size)
        increment_stock(artwork_id, size)
        raise


def refresh_sold_status(artwork_id):
    """
    Keep ``Artwork.status`` in line with stock for non-auction pieces:
    ``available`` with no units left becomes ``sold``, and ``sold`` with a
    unit back becomes ``available``. Both are single conditional UPDATEs.
    """
    in_stock = Exists(ArtworkSize.objects.filter(artwork_id=OuterRef('pk'), remaining__gt=0))
    base = Artwork.objects.filter(pk=artwork_id).exclude(type=Artwork.TYPE_AUCTION)

    if base.filter(status=Artwork.STATUS_AVAILABLE).filter(~in_stock).update(status=Artwork.STATUS_SOLD):
        logger.info("Artwork %s sold out", artwork_id)
    elif base.filter(status=Artwork.STATUS_SOLD).filter(in_stock).update(status=Artwork.STATUS_AVAILABLE):
        logger.info("Artwork %s back in stock", artwork_id)


def get_stock_level(artwork_id, size):
    """Current remaining units for a size, or None if the size does not exist"""
    return ArtworkSize.objects.filter(artwork_id=artwork_id, label=size).values_list('remaining', flat=True).first()


def low_stock_sizes(threshold):
    """Sizes of sellable artworks with ``remaining`` at or below ``threshold``"""
    return ArtworkSize.objects.select_related('artwork').filter(
        remaining__lte=threshold,
    ).exclude(
        artwork__type=Artwork.TYPE_AUCTION,
    ).order_by('remaining', 'artwork__title', 'label')
