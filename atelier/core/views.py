from django.contrib.auth import get_user_model
from django.core.exceptions import ObjectDoesNotExist
from django.core.paginator import Paginator
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAdminUser
from rest_framework.response import Response
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer, TokenRefreshSerializer
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from .exceptions import StorefrontError
from .models import AnalyticsEvent, AuditLog, Setting
from .serializers import AnalyticsEventSerializer, AuditLogSerializer, SettingSerializer
from .store_settings import BUYER_WEEKLY_LIMIT, DAILY_CAPACITY, get_store_settings
from .utils import create_audit_log

User = get_user_model()

# Event types the storefront may report; order and bid events are written server side
CLIENT_EVENT_TYPES = {'page_view', 'whatsapp_click', 'hover_story'}


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['username'] = user.username
        token['is_staff'] = user.is_staff
        return token


class CustomTokenObtainPairView(TokenObtainPairView):
    serializer_class = CustomTokenObtainPairSerializer


class CustomTokenRefreshSerializer(TokenRefreshSerializer):
    """Token refresh that reports deleted users as an invalid token"""

    def validate(self, attrs):
        try:
            return super().validate(attrs)
        except (InvalidToken, TokenError):
            raise InvalidToken('Token is invalid or expired.')
        except (ObjectDoesNotExist, User.DoesNotExist):
            raise InvalidToken('Token is invalid. User no longer exists.')


class CustomTokenRefreshView(TokenRefreshView):
    serializer_class = CustomTokenRefreshSerializer


@api_view(['POST'])
@permission_classes([AllowAny])
def analytics_track(request):
    """Record a client-side funnel event"""
    serializer = AnalyticsEventSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    if serializer.validated_data['event_type'] not in CLIENT_EVENT_TYPES:
        return Response({'eventType': ['This event type is recorded by the server.']},
                        status=status.HTTP_400_BAD_REQUEST)
    serializer.save()
    return Response(serializer.data, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAdminUser])
def analytics_summary(request):
    """Funnel totals for the admin dashboard"""
    page_views = AnalyticsEvent.objects.filter(event_type='page_view').count()
    orders = AnalyticsEvent.objects.filter(event_type='order_created').count()
    bids = AnalyticsEvent.objects.filter(event_type='bid_placed').count()
    return Response({
        'pageViews': page_views,
        'orders': orders,
        'bids': bids,
        'conversionRate': (orders / page_views) * 100 if page_views > 0 else 0,
    })


@api_view(['GET', 'PATCH'])
@permission_classes([IsAdminUser])
def store_settings(request):
    """
    Read the admin-editable store settings, or PATCH ``buyerWeeklyLimit``.
    Daily capacity is changed through the capacity settings endpoint so
    upcoming production slots are resized with it.
    """
    service = get_store_settings()
    if request.method == 'PATCH':
        if 'buyerWeeklyLimit' not in request.data:
            return Response({'error': 'buyerWeeklyLimit is required'}, status=status.HTTP_400_BAD_REQUEST)
        try:
            previous = service.buyer_weekly_limit()
            value = service.set_buyer_weekly_limit(request.data['buyerWeeklyLimit'])
        except StorefrontError as e:
            return e.to_response()
        create_audit_log(
            request=request,
            action='setting_update',
            model_name='Setting',
            object_id=BUYER_WEEKLY_LIMIT.key,
            object_name='Buyer weekly limit',
            changes={'old_value': previous, 'new_value': value},
        )

    return Response({
        'dailyCapacity': service.daily_capacity(),
        'buyerWeeklyLimit': service.buyer_weekly_limit(),
        'bounds': {
            'dailyCapacity': [DAILY_CAPACITY.min_value, DAILY_CAPACITY.max_value],
            'buyerWeeklyLimit': [BUYER_WEEKLY_LIMIT.min_value, BUYER_WEEKLY_LIMIT.max_value],
        },
        'rows': SettingSerializer(Setting.objects.order_by('key'), many=True).data,
    })


@api_view(['GET'])
@permission_classes([IsAdminUser])
def audit_log_list(request):
    """List audit logs with filtering"""
    queryset = AuditLog.objects.select_related('user').all()

    action_filter = request.query_params.get('action', None)
    if action_filter:
        queryset = queryset.filter(action=action_filter)

    model_filter = request.query_params.get('model', None)
    if model_filter:
        queryset = queryset.filter(model_name=model_filter)

    reference = request.query_params.get('reference', None)
    if reference:
        queryset = queryset.filter(object_reference=reference)

    date_from = request.query_params.get('date_from', None)
    date_to = request.query_params.get('date_to', None)
    if date_from:
        queryset = queryset.filter(created_at__date__gte=date_from)
    if date_to:
        queryset = queryset.filter(created_at__date__lte=date_to)

    try:
        page = int(request.query_params.get('page', 1))
        limit = int(request.query_params.get('limit', 50))
    except ValueError:
        return Response({'error': 'page and limit must be integers'}, status=status.HTTP_400_BAD_REQUEST)

    paginator = Paginator(queryset, max(1, min(limit, 200)))
    page_obj = paginator.get_page(page)
    return Response({
        'results': AuditLogSerializer(page_obj, many=True).data,
        'count': paginator.count,
        'page': page_obj.number,
        'page_size': paginator.per_page,
        'total_pages': paginator.num_pages,
    })
