from rest_framework import status

from core_backend.exceptions import ServiceError


class InvalidTransition(ServiceError):
    """Requested kitchen status is not a legal next state"""
    code = "INVALID_TRANSITION"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, current_status, requested_status, message=None):
        self.current_status = current_status
        self.requested_status = requested_status
        super().__init__(
            message or f"Cannot move kitchen order from '{current_status}' to '{requested_status}'",
            details={"currentStatus": current_status, "requestedStatus": requested_status},
        )
