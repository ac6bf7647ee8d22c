from django.core.paginator import Paginator
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAdminUser
from rest_framework.response import Response

from atelier.catalog.models import Artwork
from atelier.catalog.serializers import ArtworkSerializer
from atelier.core.exceptions import StorefrontError
from .models import Bid
from .serializers import AdminBidSerializer, BidSerializer, PlaceBidSerializer
from .services import close_auction, place_bid


@api_view(['POST'])
@permission_classes([AllowAny])
def bid_create(request):
    """Place a bid on a live auction"""
    serializer = PlaceBidSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    try:
        bid = place_bid(
            artwork_id=data['artworkId'],
            amount=data['amount'],
            bidder_contact=data['bidderContact'],
            bidder_name=data['bidderName'],
        )
    except StorefrontError as e:
        return e.to_response()

    return Response(BidSerializer(bid).data, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([AllowAny])
def artwork_bids(request, pk):
    """Bids on one artwork, highest first"""
    artwork = get_object_or_404(Artwork, pk=pk)
    bids = Bid.objects.select_related('artwork').filter(artwork=artwork).order_by('-amount', 'created_at')
    return Response(BidSerializer(bids, many=True).data)


@api_view(['GET'])
@permission_classes([IsAdminUser])
def admin_bid_list(request):
    queryset = Bid.objects.select_related('artwork').order_by('-created_at')
    artwork_id = request.query_params.get('artwork', None)
    if artwork_id:
        queryset = queryset.filter(artwork_id=artwork_id)
    winners_only = request.query_params.get('winners', '').lower() in ('1', 'true', 'yes')
    if winners_only:
        queryset = queryset.filter(is_winner=True)

    try:
        page = int(request.query_params.get('page', 1))
        limit = int(request.query_params.get('limit', 50))
    except ValueError:
        return Response({'error': 'page and limit must be integers'}, status=status.HTTP_400_BAD_REQUEST)

    paginator = Paginator(queryset, max(1, min(limit, 200)))
    page_obj = paginator.get_page(page)
    return Response({
        'results': AdminBidSerializer(page_obj, many=True).data,
        'count': paginator.count,
        'page': page_obj.number,
        'page_size': paginator.per_page,
        'total_pages': paginator.num_pages,
    })


@api_view(['POST'])
@permission_classes([IsAdminUser])
def auction_close(request, pk):
    """Close an auction and pick the winning bid"""
    get_object_or_404(Artwork, pk=pk)
    try:
        artwork, winner = close_auction(pk, request=request)
    except StorefrontError as e:
        return e.to_response()

    return Response({
        'artwork': ArtworkSerializer(artwork).data,
        'winner': AdminBidSerializer(winner).data if winner else None,
    })
