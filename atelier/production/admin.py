from django.contrib import admin
from .models import ProductionSlot


@admin.register(ProductionSlot)
class ProductionSlotAdmin(admin.ModelAdmin):
    list_display = ['date', 'capacity_total', 'capacity_reserved', 'updated_at']
    list_filter = ['date']
    ordering = ['-date']
    readonly_fields = ['capacity_reserved', 'created_at', 'updated_at']
