import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAdminUser
from rest_framework.response import Response

from atelier.core.exceptions import StorefrontError
from atelier.core.utils import create_audit_log
from .scheduler import CapacityScheduler
from .serializers import CapacityDaySerializer, CapacitySettingsSerializer

logger = logging.getLogger(__name__)

DEFAULT_OVERVIEW_DAYS = 14
MAX_OVERVIEW_DAYS = 90


@api_view(['GET'])
@permission_classes([IsAdminUser])
def capacity_overview(request):
    """Per-day production capacity for the next N days"""
    try:
        days = int(request.query_params.get('days', DEFAULT_OVERVIEW_DAYS))
    except ValueError:
        return Response({'error': 'days must be an integer'}, status=status.HTTP_400_BAD_REQUEST)
    if days < 1 or days > MAX_OVERVIEW_DAYS:
        return Response(
            {'error': f'days must be between 1 and {MAX_OVERVIEW_DAYS}'},
            status=status.HTTP_400_BAD_REQUEST,
        )

    overview = CapacityScheduler().capacity_overview(days)
    return Response(CapacityDaySerializer(overview, many=True).data)


@api_view(['POST'])
@permission_classes([IsAdminUser])
def capacity_settings(request):
    """Update the daily production capacity"""
    serializer = CapacitySettingsSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    scheduler = CapacityScheduler()
    previous = scheduler.store_settings.daily_capacity()
    try:
        capacity = scheduler.apply_daily_capacity(serializer.validated_data['dailyCapacity'])
    except StorefrontError as e:
        return e.to_response()

    create_audit_log(
        request=request,
        action='setting_update',
        model_name='Setting',
        object_id='daily_capacity',
        object_name='Daily capacity',
        changes={'old_value': previous, 'new_value': capacity},
    )
    return Response({'dailyCapacity': capacity})
