from django.db import models


class ProductionSlot(models.Model):
    """
    Production capacity for one calendar day. Created lazily on the first
    reservation for that date; ``capacity_reserved`` only changes through
    the conditional updates in ``atelier.production.scheduler``.
    """
    date = models.DateField(unique=True)
    capacity_total = models.PositiveIntegerField()
    capacity_reserved = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.date} ({self.capacity_reserved}/{self.capacity_total})"

    @property
    def available(self):
        return max(0, self.capacity_total - self.capacity_reserved)

    class Meta:
        db_table = 'production_slots'
        ordering = ['date']
        constraints = [
            models.CheckConstraint(condition=models.Q(capacity_total__gte=1), name='slot_capacity_total_positive'),
            models.CheckConstraint(
                condition=models.Q(capacity_reserved__lte=models.F('capacity_total')),
                name='slot_reserved_le_total',
            ),
        ]
