from rest_framework import status

from core_backend.exceptions import ServiceError


class InsufficientLoyaltyBalance(ServiceError):
    """Requested redemption exceeds the customer's available points"""
    code = "INSUFFICIENT_LOYALTY_BALANCE"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, requested, available):
        self.requested = requested
        self.available = available
        super().__init__(
            f"Cannot redeem {requested} points: only {available} available",
            details={"requested": requested, "available": available},
        )
