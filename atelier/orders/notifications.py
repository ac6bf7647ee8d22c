"""
Collaborator side effects for orders: the WhatsApp handoff message and
the outbound notification webhook.

Nothing in here may fail an order transition. Payload construction is pure,
and dispatch failures are logged and swallowed.
"""
import logging
import os
import re
from urllib.parse import quote

import requests
from django.conf import settings

logger = logging.getLogger(__name__)

STUDIO_WHATSAPP_NUMBER = getattr(
    settings,
    'STUDIO_WHATSAPP_NUMBER',
    os.getenv('STUDIO_WHATSAPP_NUMBER', ''),
)

NOTIFICATION_WEBHOOK_URL = getattr(
    settings,
    'NOTIFICATION_WEBHOOK_URL',
    os.getenv('NOTIFICATION_WEBHOOK_URL', ''),
)

NOTIFICATION_TIMEOUT_SECONDS = getattr(settings, 'NOTIFICATION_TIMEOUT_SECONDS', 5)

MESSAGE_TEMPLATES = {
    'ar': "مرحباً، أود طلب لوحة {title} (المقاس: {size}) بسعر {price} EGP. رقم الطلب: {order_number}. من فضلك أكد التوفر.",
    'en': "Hello, I would like to order {title} (size: {size}) for {price} EGP. Order number: {order_number}. Please confirm availability.",
}


def format_price(amount):
    if amount == amount.to_integral_value():
        return f"{int(amount):,}"
    return f"{amount:,.2f}"


def build_whatsapp_payload(order, language='ar'):
    """
    Message the buyer sends to the studio to complete a checkout.

    Returns ``{phone, text, url}`` where ``url`` opens a WhatsApp chat with
    the text pre-filled.
    """
    template = MESSAGE_TEMPLATES.get(language, MESSAGE_TEMPLATES['ar'])
    text = template.format(
        title=order.artwork.title,
        size=order.size,
        price=format_price(order.price),
        order_number=order.order_number,
    )
    phone = re.sub(r'[^0-9]', '', STUDIO_WHATSAPP_NUMBER or '')
    return {
        'phone': phone,
        'text': text,
        'url': f"https://wa.me/{phone}?text={quote(text)}",
    }


def dispatch_notification(event, payload):
    """
    POST an event to the notification webhook (email/SMS/WhatsApp fan-out
    lives behind it). Returns True when the webhook accepted it.
    """
    if not NOTIFICATION_WEBHOOK_URL:
        logger.debug("Notification webhook not configured, skipping %s", event)
        return False

    try:
        response = requests.post(
            NOTIFICATION_WEBHOOK_URL,
            json={'event': event, **payload},
            timeout=NOTIFICATION_TIMEOUT_SECONDS,
        )
        response.raise_for_status()
        logger.info("Sent %s notification", event)
        return True
    except requests.exceptions.RequestException as e:
        logger.warning("Failed to send %s notification: %s", event, e)
        return False


def dispatch_order_notification(order, event):
    return dispatch_notification(event, {
        'order_number': order.order_number,
        'status': order.status,
        'artwork': order.artwork.title,
        'size': order.size,
        'price': str(order.price),
        'buyer_name': order.buyer_name,
        'whatsapp': order.whatsapp,
        'scheduled_start_date': order.scheduled_start_date.isoformat() if order.scheduled_start_date else None,
        'estimated_completion_date': order.estimated_completion_date.isoformat() if order.estimated_completion_date else None,
        'queue_position': order.queue_position,
    })


def dispatch_auction_winner_notification(bid):
    return dispatch_notification('auction_won', {
        'artwork': bid.artwork.title,
        'bidder_name': bid.bidder_name,
        'whatsapp': bid.whatsapp,
        'amount': str(bid.amount),
    })
