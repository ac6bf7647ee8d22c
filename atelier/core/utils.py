"""Utility functions for audit logging and analytics events"""
import logging

from .models import AuditLog, AnalyticsEvent

logger = logging.getLogger(__name__)


def get_client_ip(request):
    """Extract client IP address from request"""
    if not request or not hasattr(request, 'META'):
        return None
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0].strip()
    else:
        ip = request.META.get('REMOTE_ADDR')
    return ip or None


def create_audit_log(request=None, action=None, model_name=None, object_id=None,
                     changes=None, user=None, object_name=None, object_reference=None):
    """
    Create an audit log entry

    Args:
        request: Django/DRF request object (for user and IP) - optional if user is provided
        action: Action type (order_confirm, auction_close, setting_update, ...)
        model_name: Name of the model being acted upon
        object_id: ID of the object (as string)
        changes: Dictionary of changes made
        user: Optional user override (defaults to request.user if request provided)
        object_name: Human-readable name of the object (e.g., artwork title)
        object_reference: Reference identifier (e.g., order number)

    Audit logging never fails the calling operation; errors are logged and
    swallowed.
    """
    try:
        audit_user = None
        if user:
            audit_user = user
        elif request and hasattr(request, 'user'):
            audit_user = request.user

        ip_address = get_client_ip(request) if request else None

        if not action or not model_name or not object_id:
            logger.warning(
                "Audit log creation skipped: missing required fields (action=%s, model_name=%s, object_id=%s)",
                action, model_name, object_id,
            )
            return None

        return AuditLog.objects.create(
            user=audit_user if audit_user and audit_user.is_authenticated else None,
            action=action,
            model_name=model_name,
            object_id=str(object_id),
            object_name=object_name,
            object_reference=object_reference,
            changes=changes or {},
            ip_address=ip_address,
        )
    except Exception as e:
        logger.error("Failed to create audit log: %s", e)
        return None


def record_analytics_event(event_type, artwork=None, meta=None):
    """
    Store a funnel event. Unlike audit logging this propagates failures:
    it runs inside the order and bid write paths, where a failed write must
    roll the operation back.
    """
    return AnalyticsEvent.objects.create(
        event_type=event_type,
        artwork=artwork,
        meta=meta or {},
    )
