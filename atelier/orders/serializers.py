from rest_framework import serializers

from .models import Order


class OrderSerializer(serializers.ModelSerializer):
    artwork_title = serializers.CharField(source='artwork.title', read_only=True)
    artwork_slug = serializers.CharField(source='artwork.slug', read_only=True)

    class Meta:
        model = Order
        fields = [
            'id', 'order_number', 'artwork', 'artwork_title', 'artwork_slug', 'size', 'price',
            'buyer_name', 'whatsapp', 'payment_method', 'payment_proof', 'status',
            'hold_expires_at', 'scheduled_start_date', 'estimated_completion_date', 'queue_position',
            'notes', 'confirmed_at', 'shipped_at', 'cancelled_at', 'refunded_at',
            'created_at', 'updated_at',
        ]
        read_only_fields = fields


class BuyerOrderSerializer(serializers.ModelSerializer):
    """What a buyer sees when looking up their orders by WhatsApp number"""
    artwork_title = serializers.CharField(source='artwork.title', read_only=True)

    class Meta:
        model = Order
        fields = [
            'order_number', 'artwork_title', 'size', 'price', 'status', 'hold_expires_at',
            'scheduled_start_date', 'estimated_completion_date', 'queue_position', 'created_at',
        ]
        read_only_fields = fields


class CreateOrderSerializer(serializers.Serializer):
    artworkId = serializers.IntegerField(min_value=1)
    size = serializers.CharField(max_length=50)
    buyerContact = serializers.CharField(max_length=32, required=False, allow_blank=True, default='')
    price = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True, default=None)
    buyerName = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')
    paymentMethod = serializers.ChoiceField(
        choices=[choice for choice, _ in Order.PAYMENT_METHOD_CHOICES],
        required=False, allow_blank=True, default='',
    )
    language = serializers.ChoiceField(choices=['ar', 'en'], required=False, default='ar')
