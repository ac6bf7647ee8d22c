from django.urls import path
from .views import capacity_overview, capacity_settings

urlpatterns = [
    path('admin/capacity/', capacity_overview, name='capacity-overview'),
    path('admin/capacity/settings/', capacity_settings, name='capacity-settings'),
]
