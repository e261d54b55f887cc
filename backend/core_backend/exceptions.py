"""
Service-layer error taxonomy and its HTTP rendering.

Services raise subclasses of ServiceError; views never translate them by hand.
service_exception_handler turns them into {"error", "code", "details"} responses.
"""
import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from core_backend.utils.pii import PIIProtection

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    """Base class for errors a caller can act on."""

    code = "SERVICE_ERROR"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message=None, details=None):
        self.message = message or self.__class__.__doc__ or self.code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self):
        return {
            "error": self.message,
            "code": self.code,
            "details": self.details,
        }


def service_exception_handler(exc, context):
    """
    DRF exception handler: renders ServiceError subclasses with their code and status,
    and defers everything else to DRF's default handler.
    """
    if isinstance(exc, ServiceError):
        request = context.get('request')
        logger.warning(
            f"{exc.__class__.__name__} on {getattr(request, 'method', '?')} "
            f"{getattr(request, 'path', '?')}: {exc.message}",
            extra={'details': PIIProtection.scrub_pii_from_dict(exc.details)},
        )
        return Response(exc.to_dict(), status=exc.status_code)

    return exception_handler(exc, context)
