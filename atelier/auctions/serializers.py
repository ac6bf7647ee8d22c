from rest_framework import serializers

from .models import Bid


class BidSerializer(serializers.ModelSerializer):
    artwork_title = serializers.CharField(source='artwork.title', read_only=True)

    class Meta:
        model = Bid
        fields = ['id', 'artwork', 'artwork_title', 'bidder_name', 'amount', 'is_winner', 'created_at']
        read_only_fields = fields


class AdminBidSerializer(BidSerializer):
    """Includes the bidder's contact for the studio"""

    class Meta(BidSerializer.Meta):
        fields = BidSerializer.Meta.fields + ['whatsapp']
        read_only_fields = fields


class PlaceBidSerializer(serializers.Serializer):
    artworkId = serializers.IntegerField(min_value=1)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    bidderContact = serializers.CharField(max_length=32, required=False, allow_blank=True, default='')
    bidderName = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')
