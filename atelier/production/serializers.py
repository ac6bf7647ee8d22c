from rest_framework import serializers

from atelier.core.store_settings import DAILY_CAPACITY


class CapacityDaySerializer(serializers.Serializer):
    date = serializers.DateField()
    available = serializers.IntegerField()
    reserved = serializers.IntegerField()
    total = serializers.IntegerField()


class CapacitySettingsSerializer(serializers.Serializer):
    dailyCapacity = serializers.IntegerField(
        min_value=DAILY_CAPACITY.min_value,
        max_value=DAILY_CAPACITY.max_value,
    )
