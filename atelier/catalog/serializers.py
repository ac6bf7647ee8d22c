from rest_framework import serializers

from .models import Artwork, ArtworkSize


class ArtworkSerializer(serializers.ModelSerializer):
    """Artwork with its sizes rendered as a ``label -> stock`` mapping"""
    sizes = serializers.SerializerMethodField()
    minimum_next_bid = serializers.SerializerMethodField()

    class Meta:
        model = Artwork
        fields = [
            'id', 'slug', 'title', 'short_description', 'story', 'images', 'type', 'status',
            'sizes', 'auction_start', 'auction_end', 'current_bid', 'min_increment',
            'minimum_next_bid', 'created_at', 'updated_at',
        ]

    def get_sizes(self, obj):
        return {
            size.label: {
                'price': str(size.price),
                'total_copies': size.total_copies,
                'remaining': size.remaining,
            }
            for size in obj.sizes.all()
        }

    def get_minimum_next_bid(self, obj):
        if not obj.is_auction:
            return None
        from atelier.auctions.services import minimum_next_bid
        return str(minimum_next_bid(obj))


class ArtworkAdminSerializer(ArtworkSerializer):
    """Admin view including the cost fields behind the margin gate"""

    class Meta(ArtworkSerializer.Meta):
        fields = ArtworkSerializer.Meta.fields + [
            'material_cost', 'packaging_cost', 'labor_cost', 'min_profit_margin',
        ]


class InventoryAlertSerializer(serializers.ModelSerializer):
    artwork_id = serializers.IntegerField(source='artwork.id', read_only=True)
    artwork_title = serializers.CharField(source='artwork.title', read_only=True)
    artwork_slug = serializers.CharField(source='artwork.slug', read_only=True)
    level = serializers.SerializerMethodField()

    class Meta:
        model = ArtworkSize
        fields = ['id', 'artwork_id', 'artwork_title', 'artwork_slug', 'label', 'total_copies', 'remaining', 'level']

    def get_level(self, obj):
        return 'out_of_stock' if obj.remaining == 0 else 'low'
