from django.db import models

from atelier.catalog.models import Artwork


class Order(models.Model):
    """WhatsApp checkout order holding one unit of an artwork size"""
    STATUS_PENDING = 'pending'
    STATUS_CONFIRMED = 'confirmed'
    STATUS_SCHEDULED = 'scheduled'
    STATUS_CANCELLED = 'cancelled'
    STATUS_REFUNDED = 'refunded'
    STATUS_SHIPPED = 'shipped'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_CONFIRMED, 'Confirmed'),
        (STATUS_SCHEDULED, 'Scheduled'),
        (STATUS_CANCELLED, 'Cancelled'),
        (STATUS_REFUNDED, 'Refunded'),
        (STATUS_SHIPPED, 'Shipped'),
    ]

    # One-way state machine; every admin transition in services.py claims its
    # from-statuses from this table. Terminal states have no outgoing edges.
    TRANSITIONS = {
        STATUS_PENDING: {STATUS_CONFIRMED, STATUS_SCHEDULED, STATUS_CANCELLED, STATUS_REFUNDED},
        STATUS_CONFIRMED: {STATUS_SHIPPED, STATUS_REFUNDED},
        STATUS_SCHEDULED: {STATUS_SHIPPED, STATUS_REFUNDED},
        STATUS_CANCELLED: set(),
        STATUS_REFUNDED: set(),
        STATUS_SHIPPED: set(),
    }

    PAYMENT_METHOD_CHOICES = [
        ('vodafone_cash', 'Vodafone Cash'),
        ('instapay', 'InstaPay'),
    ]

    order_number = models.CharField(max_length=100, unique=True)
    artwork = models.ForeignKey(Artwork, on_delete=models.PROTECT, related_name='orders')
    size = models.CharField(max_length=50)
    price = models.DecimalField(max_digits=12, decimal_places=2, help_text="Price snapshot taken when the order was created")
    buyer_name = models.CharField(max_length=255, blank=True)
    whatsapp = models.CharField(max_length=32, blank=True, db_index=True)
    payment_method = models.CharField(max_length=20, choices=PAYMENT_METHOD_CHOICES, blank=True)
    payment_proof = models.CharField(max_length=500, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    hold_expires_at = models.DateTimeField(null=True, blank=True)
    scheduled_start_date = models.DateField(null=True, blank=True)
    estimated_completion_date = models.DateField(null=True, blank=True)
    queue_position = models.PositiveIntegerField(null=True, blank=True)
    notes = models.TextField(blank=True)
    confirmed_at = models.DateTimeField(null=True, blank=True)
    shipped_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    refunded_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.order_number

    def can_transition_to(self, new_status):
        return new_status in self.TRANSITIONS.get(self.status, set())

    @classmethod
    def statuses_leading_to(cls, new_status):
        """Statuses an order may be in to move to ``new_status``, in choice order"""
        return [value for value, _ in cls.STATUS_CHOICES if new_status in cls.TRANSITIONS[value]]

    class Meta:
        db_table = 'orders'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', 'hold_expires_at'], name='idx_order_status_hold'),
            models.Index(fields=['artwork', 'status'], name='idx_order_artwork_status'),
            models.Index(fields=['scheduled_start_date'], name='idx_order_start_date'),
        ]


class BuyerLimit(models.Model):
    """Confirmed orders per buyer contact for one week"""
    contact = models.CharField(max_length=32)
    week_start = models.DateField()
    confirmed_orders_count = models.PositiveIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.contact} / {self.week_start}: {self.confirmed_orders_count}"

    class Meta:
        db_table = 'buyer_limits'
        constraints = [
            models.UniqueConstraint(fields=['contact', 'week_start'], name='unique_buyer_limit_week'),
        ]
