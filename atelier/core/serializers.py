from django.contrib.auth import get_user_model
from rest_framework import serializers

from atelier.catalog.models import Artwork
from .models import Setting, AuditLog, AnalyticsEvent

User = get_user_model()


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'username', 'email', 'first_name', 'last_name', 'is_active', 'is_staff']


class SettingSerializer(serializers.ModelSerializer):
    class Meta:
        model = Setting
        fields = ['id', 'key', 'value', 'description', 'updated_at']


class AuditLogSerializer(serializers.ModelSerializer):
    user = UserSerializer(read_only=True)

    class Meta:
        model = AuditLog
        fields = ['id', 'user', 'action', 'model_name', 'object_id', 'object_name',
                  'object_reference', 'changes', 'ip_address', 'created_at']


class AnalyticsEventSerializer(serializers.ModelSerializer):
    artworkId = serializers.PrimaryKeyRelatedField(
        source='artwork', queryset=Artwork.objects.all(),
        required=False, allow_null=True,
    )
    eventType = serializers.ChoiceField(source='event_type', choices=AnalyticsEvent.EVENT_TYPE_CHOICES)

    class Meta:
        model = AnalyticsEvent
        fields = ['id', 'eventType', 'artworkId', 'meta', 'created_at']
        read_only_fields = ['id', 'created_at']
