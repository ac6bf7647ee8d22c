from django.urls import path
from .views import (
    order_create, order_lookup, admin_order_list, admin_order_detail,
    order_confirm, order_ship, order_refund, order_cancel, restore_holds,
)

urlpatterns = [
    # Storefront
    path('orders/', order_create, name='order-create'),
    path('orders/lookup/', order_lookup, name='order-lookup'),

    # Admin lifecycle
    path('admin/orders/', admin_order_list, name='admin-order-list'),
    path('admin/orders/<int:pk>/', admin_order_detail, name='admin-order-detail'),
    path('admin/orders/<int:pk>/confirm/', order_confirm, name='order-confirm'),
    path('admin/orders/<int:pk>/ship/', order_ship, name='order-ship'),
    path('admin/orders/<int:pk>/refund/', order_refund, name='order-refund'),
    path('admin/orders/<int:pk>/cancel/', order_cancel, name='order-cancel'),

    # Scheduler hook
    path('restore-holds/', restore_holds, name='restore-holds'),
]
