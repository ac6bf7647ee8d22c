from django.urls import path
from .views import artwork_list, artwork_detail, inventory_alerts

urlpatterns = [
    path('artworks/', artwork_list, name='artwork-list'),
    path('artworks/<slug:slug>/', artwork_detail, name='artwork-detail'),
    path('admin/inventory-alerts/', inventory_alerts, name='inventory-alerts'),
]
