"""
URL configuration for the atelier storefront.

Every app mounts its API routes under /api/v1/.
"""
from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('atelier.core.urls')),
    path('api/v1/', include('atelier.catalog.urls')),
    path('api/v1/', include('atelier.orders.urls')),
    path('api/v1/', include('atelier.auctions.urls')),
    path('api/v1/', include('atelier.production.urls')),
]
