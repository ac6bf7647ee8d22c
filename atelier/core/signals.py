"""
Cache invalidation for store settings edited outside ``StoreSettings``
(Django admin, the settings endpoint).
"""
import logging

from django.core.cache import cache
from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from .models import Setting
from .store_settings import CACHE_KEY_PREFIX

logger = logging.getLogger(__name__)


@receiver(post_save, sender=Setting)
@receiver(post_delete, sender=Setting)
def invalidate_setting_cache(sender, instance, **kwargs):
    cache.delete(f"{CACHE_KEY_PREFIX}:{instance.key}")
    logger.debug("Invalidated cached setting %s", instance.key)
