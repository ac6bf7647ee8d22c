"""
Hold expiry reconciliation.

Pending orders keep their unit of stock until ``hold_expires_at``. The sweep
cancels every expired hold and returns its unit. Each order is claimed with
a conditional UPDATE first and restocked only when that UPDATE changed the
row, so overlapping sweeps restock an order once.
"""
import logging

from django.db import transaction
from django.utils import timezone

from atelier.catalog.inventory import increment_stock
from atelier.core.utils import create_audit_log
from .models import Order

logger = logging.getLogger(__name__)


def restore_expired_holds(now=None, request=None):
    """Cancel expired pending orders and restock them. Returns how many were restored."""
    now = now or timezone.now()
    expired = list(
        Order.objects.filter(
            status=Order.STATUS_PENDING,
            hold_expires_at__isnull=False,
            hold_expires_at__lte=now,
        ).values('id', 'artwork_id', 'size', 'order_number')
    )

    restored = 0
    for order in expired:
        with transaction.atomic():
            claimed = Order.objects.filter(
                pk=order['id'],
                status=Order.STATUS_PENDING,
                hold_expires_at__lte=now,
            ).update(
                status=Order.STATUS_CANCELLED,
                cancelled_at=now,
                hold_expires_at=None,
                updated_at=now,
            )
            if claimed != 1:
                continue
            if not increment_stock(order['artwork_id'], order['size']):
                logger.error("Expired order %s could not return %s to stock",
                             order['order_number'], order['size'])
            restored += 1

        create_audit_log(
            request=request,
            action='hold_expire',
            model_name='Order',
            object_id=order['id'],
            object_reference=order['order_number'],
            changes={'status': Order.STATUS_CANCELLED, 'size': order['size']},
        )

    if restored:
        logger.info("Restored %s expired holds", restored)
    return restored
