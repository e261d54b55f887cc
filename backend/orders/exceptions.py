"""
Order fulfillment exceptions.

Each maps to one error code and HTTP status through core_backend.exceptions.
"""
from rest_framework import status

from core_backend.exceptions import ServiceError


class InvalidOrderPayload(ServiceError):
    """Order request failed validation"""
    code = "VALIDATION_ERROR"
    status_code = status.HTTP_400_BAD_REQUEST

    @classmethod
    def from_serializer_errors(cls, errors):
        return cls("Invalid order payload", details={"fields": errors})


class OrderNotFound(ServiceError):
    """Order does not exist in this restaurant"""
    code = "ORDER_NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, order_id):
        self.order_id = order_id
        super().__init__(f"Order {order_id} not found", details={"orderId": str(order_id)})


class PersistenceConflict(ServiceError):
    """A concurrent write was detected; the request can be retried"""
    code = "PERSISTENCE_CONFLICT"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, message=None, details=None):
        details = dict(details or {})
        details.setdefault("retryable", True)
        super().__init__(message, details=details)


class InvalidOtp(ServiceError):
    """OTP does not match or has already been used"""
    code = "INVALID_OTP"
    status_code = status.HTTP_400_BAD_REQUEST


class LineItemsLocked(ServiceError):
    """Line items cannot change once the kitchen has accepted the order"""
    code = "LINE_ITEMS_LOCKED"
    status_code = status.HTTP_409_CONFLICT


class NotificationDeliveryFailure(ServiceError):
    """
    A display event or confirmation message could not be dispatched.
    Never raised to callers; collected as a warning on the result.
    """
    code = "NOTIFICATION_DELIVERY_FAILURE"
