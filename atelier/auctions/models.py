from django.db import models

from atelier.catalog.models import Artwork


class Bid(models.Model):
    """A bid on an auction artwork. Only ``is_winner`` changes after creation."""
    artwork = models.ForeignKey(Artwork, on_delete=models.PROTECT, related_name='bids')
    bidder_name = models.CharField(max_length=255, blank=True)
    whatsapp = models.CharField(max_length=32, blank=True)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    is_winner = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.artwork} - {self.amount}"

    class Meta:
        db_table = 'bids'
        ordering = ['-amount', 'created_at']
        indexes = [
            models.Index(fields=['artwork', '-amount'], name='idx_bid_artwork_amount'),
        ]
        constraints = [
            models.CheckConstraint(condition=models.Q(amount__gt=0), name='bid_amount_positive'),
        ]
