from django.urls import path
from .views import bid_create, artwork_bids, admin_bid_list, auction_close

urlpatterns = [
    path('bids/', bid_create, name='bid-create'),
    path('artworks/<int:pk>/bids/', artwork_bids, name='artwork-bids'),
    path('admin/bids/', admin_bid_list, name='admin-bid-list'),
    path('admin/artworks/<int:pk>/close-auction/', auction_close, name='auction-close'),
]
