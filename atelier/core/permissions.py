import hmac

from django.conf import settings
from rest_framework.permissions import BasePermission


class IsAdminOrCronToken(BasePermission):
    """
    Staff users, or a scheduler presenting the shared X-Cron-Token header.
    The token is disabled while CRON_TOKEN is unset.
    """

    def has_permission(self, request, view):
        user = getattr(request, 'user', None)
        if user and user.is_authenticated and user.is_staff:
            return True
        expected = getattr(settings, 'CRON_TOKEN', '')
        provided = request.META.get('HTTP_X_CRON_TOKEN', '')
        if not expected or not provided:
            return False
        return hmac.compare_digest(expected, provided)
