import logging

from django.core.paginator import Paginator
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAdminUser
from rest_framework.response import Response

from atelier.core.exceptions import StorefrontError
from atelier.core.permissions import IsAdminOrCronToken
from .filters import OrderFilter
from .holds import restore_expired_holds
from .models import Order
from .serializers import BuyerOrderSerializer, CreateOrderSerializer, OrderSerializer
from .services import OrderLifecycle, orders_for_contact

logger = logging.getLogger(__name__)


@api_view(['POST'])
@permission_classes([AllowAny])
def order_create(request):
    """Hold one unit of an artwork size and hand the buyer a WhatsApp message"""
    serializer = CreateOrderSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    try:
        order, payload = OrderLifecycle().create_order(
            artwork_id=data['artworkId'],
            size=data['size'],
            buyer_contact=data['buyerContact'],
            declared_price=data['price'],
            buyer_name=data['buyerName'],
            payment_method=data['paymentMethod'],
            language=data['language'],
        )
    except StorefrontError as e:
        return e.to_response()

    return Response({
        'order': OrderSerializer(order).data,
        'externalMessagePayload': payload,
    }, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([AllowAny])
def order_lookup(request):
    """Buyer-facing order status by WhatsApp number"""
    whatsapp = request.query_params.get('whatsapp', '').strip()
    if not whatsapp:
        return Response({'error': 'whatsapp parameter is required'}, status=status.HTTP_400_BAD_REQUEST)

    orders = orders_for_contact(whatsapp)[:20]
    return Response(BuyerOrderSerializer(orders, many=True).data)


@api_view(['GET'])
@permission_classes([IsAdminUser])
def admin_order_list(request):
    """Admin order list with filtering and pagination"""
    queryset = Order.objects.select_related('artwork').all()
    filterset = OrderFilter(request.query_params, queryset=queryset)
    if not filterset.is_valid():
        return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
    queryset = filterset.qs

    try:
        page = int(request.query_params.get('page', 1))
        limit = int(request.query_params.get('limit', 50))
    except ValueError:
        return Response({'error': 'page and limit must be integers'}, status=status.HTTP_400_BAD_REQUEST)

    paginator = Paginator(queryset, max(1, min(limit, 200)))
    page_obj = paginator.get_page(page)

    serializer = OrderSerializer(page_obj, many=True)
    return Response({
        'results': serializer.data,
        'count': paginator.count,
        'next': page_obj.next_page_number() if page_obj.has_next() else None,
        'previous': page_obj.previous_page_number() if page_obj.has_previous() else None,
        'page': page_obj.number,
        'page_size': paginator.per_page,
        'total_pages': paginator.num_pages,
    })


@api_view(['GET'])
@permission_classes([IsAdminUser])
def admin_order_detail(request, pk):
    try:
        order = Order.objects.select_related('artwork').get(pk=pk)
    except Order.DoesNotExist:
        return Response({'error': 'Order not found'}, status=status.HTTP_404_NOT_FOUND)
    return Response(OrderSerializer(order).data)


def _run_transition(request, pk, action):
    lifecycle = OrderLifecycle()
    handler = getattr(lifecycle, f"{action}_order")
    try:
        order = handler(pk, request=request)
    except Order.DoesNotExist:
        return Response({'error': 'Order not found'}, status=status.HTTP_404_NOT_FOUND)
    except StorefrontError as e:
        logger.info("Order %s %s rejected: %s", pk, action, e.code)
        return e.to_response()
    return Response(OrderSerializer(order).data)


@api_view(['POST'])
@permission_classes([IsAdminUser])
def order_confirm(request, pk):
    """Confirm a pending order into today's production slot or the next free day"""
    return _run_transition(request, pk, 'confirm')


@api_view(['POST'])
@permission_classes([IsAdminUser])
def order_ship(request, pk):
    return _run_transition(request, pk, 'ship')


@api_view(['POST'])
@permission_classes([IsAdminUser])
def order_refund(request, pk):
    return _run_transition(request, pk, 'refund')


@api_view(['POST'])
@permission_classes([IsAdminUser])
def order_cancel(request, pk):
    return _run_transition(request, pk, 'cancel')


@api_view(['POST'])
@permission_classes([IsAdminOrCronToken])
def restore_holds(request):
    """Cancel expired pending holds and return their stock"""
    restored = restore_expired_holds(request=request)
    return Response({'restoredCount': restored})
