from django.contrib import admin
from .models import Bid


@admin.register(Bid)
class BidAdmin(admin.ModelAdmin):
    list_display = ['artwork', 'bidder_name', 'whatsapp', 'amount', 'is_winner', 'created_at']
    list_filter = ['is_winner', 'created_at']
    search_fields = ['artwork__title', 'bidder_name', 'whatsapp']
    ordering = ['-created_at']
    readonly_fields = ['artwork', 'amount', 'is_winner', 'created_at']
