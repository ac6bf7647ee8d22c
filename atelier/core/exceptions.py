"""
Business rule errors raised by the order, auction and capacity services.

Each error knows its HTTP status and carries structured details so views
can explain a rejection without exposing internal state.
"""
from rest_framework import status
from rest_framework.response import Response


class StorefrontError(Exception):
    """Base class for client-facing business rule rejections"""
    code = 'StorefrontError'
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = 'Request rejected'

    def __init__(self, message=None, **details):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def as_dict(self):
        return {
            'error': self.code,
            'message': self.message,
            'details': {key: _jsonable(value) for key, value in self.details.items()},
        }

    def to_response(self):
        return Response(self.as_dict(), status=self.status_code)


class StockUnavailable(StorefrontError):
    code = 'StockUnavailable'
    status_code = status.HTTP_409_CONFLICT
    default_message = 'The requested size is not available'


class InsufficientMargin(StorefrontError):
    code = 'InsufficientMargin'
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = 'Order price does not cover the minimum profit margin'


class BuyerLimitExceeded(StorefrontError):
    code = 'BuyerLimitExceeded'
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = 'Weekly order limit reached for this buyer'


class InvalidTransition(StorefrontError):
    code = 'InvalidTransition'
    status_code = status.HTTP_409_CONFLICT
    default_message = 'Order cannot move to the requested status'


class NoCapacityHorizon(StorefrontError):
    code = 'NoCapacityHorizon'
    status_code = status.HTTP_409_CONFLICT
    default_message = 'No production capacity available within the scheduling horizon'


class ReservationFailed(StorefrontError):
    code = 'ReservationFailed'
    status_code = status.HTTP_409_CONFLICT
    default_message = 'Production slot was taken by another order'


class InvalidAuction(StorefrontError):
    code = 'InvalidAuction'
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = 'Artwork is not an auction'


class AuctionNotActive(StorefrontError):
    code = 'AuctionNotActive'
    status_code = status.HTTP_409_CONFLICT
    default_message = 'Auction is not accepting bids'


class BidTooLow(StorefrontError):
    code = 'BidTooLow'
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = 'Bid does not exceed the current bid plus the minimum increment'


class InvalidSetting(StorefrontError):
    code = 'InvalidSetting'
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = 'Setting value is out of bounds'


def _jsonable(value):
    # Decimals, dates and datetimes are rendered as strings in error payloads
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if hasattr(value, 'isoformat'):
        return value.isoformat()
    return str(value)
