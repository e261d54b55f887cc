"""
Customer-specific exceptions.
"""
from core_backend.exceptions import ServiceError


class CustomerValidationError(ServiceError):
    """Customer contact details are missing or invalid"""
    code = "VALIDATION_ERROR"
