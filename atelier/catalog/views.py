from django.conf import settings
from django.shortcuts import get_object_or_404
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAdminUser
from rest_framework.response import Response

from .inventory import low_stock_sizes
from .models import Artwork
from .serializers import ArtworkAdminSerializer, ArtworkSerializer, InventoryAlertSerializer


def _artwork_serializer_class(request):
    """Staff also see the cost fields behind the margin gate"""
    if request.user and request.user.is_staff:
        return ArtworkAdminSerializer
    return ArtworkSerializer


@api_view(['GET'])
@permission_classes([AllowAny])
def artwork_list(request):
    """List artworks with optional type/status filtering"""
    queryset = Artwork.objects.prefetch_related('sizes').all()
    artwork_type = request.query_params.get('type', None)
    artwork_status = request.query_params.get('status', None)

    if artwork_type:
        queryset = queryset.filter(type=artwork_type)
    if artwork_status:
        queryset = queryset.filter(status=artwork_status)

    serializer = _artwork_serializer_class(request)(queryset, many=True)
    return Response(serializer.data)


@api_view(['GET'])
@permission_classes([AllowAny])
def artwork_detail(request, slug):
    """Retrieve an artwork by slug"""
    artwork = get_object_or_404(Artwork.objects.prefetch_related('sizes'), slug=slug)
    serializer = _artwork_serializer_class(request)(artwork)
    return Response(serializer.data)


@api_view(['GET'])
@permission_classes([IsAdminUser])
def inventory_alerts(request):
    """Sizes that are sold out or running low"""
    try:
        threshold = int(request.query_params.get('threshold', getattr(settings, 'LOW_STOCK_THRESHOLD', 2)))
    except ValueError:
        return Response({'error': 'threshold must be an integer'}, status=400)

    sizes = low_stock_sizes(max(threshold, 0))
    serializer = InventoryAlertSerializer(sizes, many=True)
    return Response(serializer.data)
