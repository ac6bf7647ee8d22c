from django.conf import settings
from django.db import models


class Setting(models.Model):
    """System settings"""
    key = models.CharField(max_length=100, unique=True)
    value = models.TextField()
    description = models.TextField(blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.key

    class Meta:
        db_table = 'settings'


class AuditLog(models.Model):
    """Audit log for admin operations and order transitions"""
    ACTION_CHOICES = [
        ('order_create', 'Order Created'),
        ('order_confirm', 'Order Confirmed'),
        ('order_schedule', 'Order Scheduled'),
        ('order_ship', 'Order Shipped'),
        ('order_refund', 'Order Refunded'),
        ('order_cancel', 'Order Cancelled'),
        ('hold_expire', 'Hold Expired'),
        ('auction_close', 'Auction Closed'),
        ('setting_update', 'Setting Updated'),
    ]

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='audit_logs')
    action = models.CharField(max_length=50, choices=ACTION_CHOICES)
    model_name = models.CharField(max_length=100)
    object_id = models.CharField(max_length=100)
    object_name = models.CharField(max_length=255, blank=True, null=True, help_text="Human-readable name of the object (e.g., artwork title)")
    object_reference = models.CharField(max_length=255, blank=True, null=True, help_text="Reference identifier (e.g., order number)")
    changes = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'audit_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['-created_at'], name='idx_audit_created'),
            models.Index(fields=['action'], name='idx_audit_action'),
            models.Index(fields=['object_reference'], name='idx_audit_reference'),
        ]


class AnalyticsEvent(models.Model):
    """Storefront funnel events (page views, WhatsApp clicks, orders, bids)"""
    EVENT_TYPE_CHOICES = [
        ('page_view', 'Page View'),
        ('whatsapp_click', 'WhatsApp Click'),
        ('order_created', 'Order Created'),
        ('bid_placed', 'Bid Placed'),
        ('hover_story', 'Hover Story'),
    ]

    event_type = models.CharField(max_length=30, choices=EVENT_TYPE_CHOICES)
    artwork = models.ForeignKey('catalog.Artwork', on_delete=models.SET_NULL, null=True, blank=True, related_name='analytics_events')
    meta = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'analytics_events'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['event_type', '-created_at'], name='idx_analytics_type_created'),
        ]
