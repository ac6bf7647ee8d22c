from decimal import Decimal

from django.db import models


class Artwork(models.Model):
    """Catalog entry sold as a unique piece, a limited edition or an auction"""
    TYPE_UNIQUE = 'unique'
    TYPE_LIMITED = 'limited'
    TYPE_AUCTION = 'auction'
    TYPE_CHOICES = [
        (TYPE_UNIQUE, 'Unique'),
        (TYPE_LIMITED, 'Limited Edition'),
        (TYPE_AUCTION, 'Auction'),
    ]

    STATUS_AVAILABLE = 'available'
    STATUS_COMING_SOON = 'coming_soon'
    STATUS_SOLD = 'sold'
    STATUS_AUCTION_CLOSED = 'auction_closed'
    STATUS_CHOICES = [
        (STATUS_AVAILABLE, 'Available'),
        (STATUS_COMING_SOON, 'Coming Soon'),
        (STATUS_SOLD, 'Sold'),
        (STATUS_AUCTION_CLOSED, 'Auction Closed'),
    ]

    slug = models.SlugField(max_length=200, unique=True)
    title = models.CharField(max_length=255)
    short_description = models.TextField(blank=True)
    story = models.TextField(blank=True)
    images = models.JSONField(default=list, blank=True)
    type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_AVAILABLE)

    # Auction fields, only meaningful when type == auction
    auction_start = models.DateTimeField(null=True, blank=True)
    auction_end = models.DateTimeField(null=True, blank=True)
    current_bid = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    min_increment = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)

    # Cost fields, used only by the profit margin gate
    material_cost = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    packaging_cost = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    labor_cost = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    min_profit_margin = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.title

    @property
    def is_auction(self):
        return self.type == self.TYPE_AUCTION

    def total_cost(self):
        return sum(
            (cost or Decimal('0.00') for cost in (self.material_cost, self.packaging_cost, self.labor_cost)),
            Decimal('0.00'),
        )

    def expected_profit(self, price):
        return Decimal(price) - self.total_cost()

    class Meta:
        db_table = 'artworks'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status'], name='idx_artwork_status'),
            models.Index(fields=['type', 'status'], name='idx_artwork_type_status'),
        ]


class ArtworkSize(models.Model):
    """
    Stock counter for one size of an artwork.

    ``remaining`` must only change through the conditional updates in
    ``atelier.catalog.inventory``.
    """
    artwork = models.ForeignKey(Artwork, on_delete=models.CASCADE, related_name='sizes')
    label = models.CharField(max_length=50)
    price = models.DecimalField(max_digits=12, decimal_places=2)
    total_copies = models.PositiveIntegerField(default=1)
    remaining = models.PositiveIntegerField(blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.artwork.title} ({self.label})"

    def save(self, *args, **kwargs):
        # New sizes start fully stocked unless an explicit count is given
        if self._state.adding and self.remaining is None:
            self.remaining = self.total_copies
        super().save(*args, **kwargs)

    class Meta:
        db_table = 'artwork_sizes'
        ordering = ['artwork', 'price']
        constraints = [
            models.UniqueConstraint(fields=['artwork', 'label'], name='unique_artwork_size_label'),
            models.CheckConstraint(condition=models.Q(remaining__gte=0), name='artwork_size_remaining_non_negative'),
            models.CheckConstraint(
                condition=models.Q(remaining__lte=models.F('total_copies')),
                name='artwork_size_remaining_le_total',
            ),
        ]
