from django.contrib import admin
from .models import Order, BuyerLimit


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ['order_number', 'artwork', 'size', 'price', 'whatsapp', 'status',
                    'hold_expires_at', 'scheduled_start_date', 'created_at']
    list_filter = ['status', 'payment_method', 'created_at']
    search_fields = ['order_number', 'whatsapp', 'buyer_name', 'artwork__title']
    ordering = ['-created_at']
    # Status changes go through the order services so stock and slots stay consistent
    readonly_fields = ['order_number', 'status', 'hold_expires_at', 'scheduled_start_date',
                       'estimated_completion_date', 'queue_position', 'confirmed_at', 'shipped_at',
                       'cancelled_at', 'refunded_at', 'created_at', 'updated_at']


@admin.register(BuyerLimit)
class BuyerLimitAdmin(admin.ModelAdmin):
    list_display = ['contact', 'week_start', 'confirmed_orders_count', 'updated_at']
    search_fields = ['contact']
    ordering = ['-week_start']
