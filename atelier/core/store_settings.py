"""
Typed access to the admin-editable store settings.

Values live in the key-value ``Setting`` table and are cached through the
Django cache (Redis in production). Every accessor validates bounds so the
order lifecycle and capacity scheduler never see an out-of-range value.
"""
import logging
from dataclasses import dataclass
from datetime import timedelta
from zoneinfo import ZoneInfo

from django.conf import settings
from django.core.cache import cache

from .exceptions import InvalidSetting
from .models import Setting

logger = logging.getLogger(__name__)

SETTINGS_CACHE_TTL = 300  # 5 minutes
CACHE_KEY_PREFIX = 'store_setting'


@dataclass(frozen=True)
class IntSetting:
    key: str
    default: int
    min_value: int
    max_value: int
    description: str = ''

    def validate(self, value):
        try:
            number = int(value)
        except (TypeError, ValueError):
            raise InvalidSetting(
                f"{self.key} must be an integer",
                key=self.key, min=self.min_value, max=self.max_value,
            )
        if isinstance(value, bool) or str(number) != str(value).strip():
            raise InvalidSetting(
                f"{self.key} must be an integer",
                key=self.key, min=self.min_value, max=self.max_value,
            )
        if number < self.min_value or number > self.max_value:
            raise InvalidSetting(
                f"{self.key} must be between {self.min_value} and {self.max_value}",
                key=self.key, min=self.min_value, max=self.max_value,
            )
        return number


DAILY_CAPACITY = IntSetting(
    key='daily_capacity', default=3, min_value=1, max_value=20,
    description='Artworks the studio can start producing per day',
)
BUYER_WEEKLY_LIMIT = IntSetting(
    key='buyer_weekly_limit', default=2, min_value=1, max_value=20,
    description='Confirmed orders allowed per buyer contact per week',
)


class StoreSettings:
    """Configuration service injected into the order and capacity services"""

    def _cache_key(self, key):
        return f"{CACHE_KEY_PREFIX}:{key}"

    def _read_int(self, spec):
        cache_key = self._cache_key(spec.key)
        cached = cache.get(cache_key)
        if cached is not None:
            return cached

        row = Setting.objects.filter(key=spec.key).values_list('value', flat=True).first()
        if row is None:
            value = spec.default
        else:
            try:
                value = spec.validate(row)
            except InvalidSetting:
                logger.warning(
                    "Stored setting %s=%r is invalid, using default %s",
                    spec.key, row, spec.default,
                )
                value = spec.default

        cache.set(cache_key, value, SETTINGS_CACHE_TTL)
        return value

    def _write_int(self, spec, value):
        number = spec.validate(value)
        Setting.objects.update_or_create(
            key=spec.key,
            defaults={'value': str(number), 'description': spec.description},
        )
        cache.delete(self._cache_key(spec.key))
        logger.info("Setting %s updated to %s", spec.key, number)
        return number

    # Admin-editable values

    def daily_capacity(self):
        return self._read_int(DAILY_CAPACITY)

    def set_daily_capacity(self, value):
        return self._write_int(DAILY_CAPACITY, value)

    def buyer_weekly_limit(self):
        return self._read_int(BUYER_WEEKLY_LIMIT)

    def set_buyer_weekly_limit(self, value):
        return self._write_int(BUYER_WEEKLY_LIMIT, value)

    # Deployment values

    def hold_duration(self):
        return timedelta(hours=getattr(settings, 'ORDER_HOLD_HOURS', 24))

    def production_lead_time(self):
        return timedelta(days=getattr(settings, 'PRODUCTION_LEAD_DAYS', 5))

    def capacity_horizon_days(self):
        return getattr(settings, 'CAPACITY_HORIZON_DAYS', 30)

    def store_timezone(self):
        return ZoneInfo(getattr(settings, 'STORE_TIMEZONE', settings.TIME_ZONE))


def get_store_settings():
    return StoreSettings()
