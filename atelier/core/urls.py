from django.urls import path
from .views import (
    CustomTokenObtainPairView, CustomTokenRefreshView,
    analytics_track, analytics_summary, store_settings, audit_log_list,
)

urlpatterns = [
    # Auth endpoints
    path('auth/login/', CustomTokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('auth/refresh/', CustomTokenRefreshView.as_view(), name='token_refresh'),

    # Analytics
    path('analytics/', analytics_track, name='analytics-track'),
    path('admin/analytics/', analytics_summary, name='analytics-summary'),

    # Store settings and audit trail
    path('admin/settings/', store_settings, name='store-settings'),
    path('admin/audit-logs/', audit_log_list, name='audit-log-list'),
]
