import logging

from django.conf import settings
from django.http import JsonResponse

from .managers import set_current_restaurant
from .models import Restaurant

logger = logging.getLogger(__name__)


class RestaurantNotFoundError(Exception):
    """Raised when the restaurant cannot be resolved from the request."""
    pass


class RestaurantMiddleware:
    """
    Resolves the restaurant from the request and attaches it to request.restaurant.

    Resolution precedence:
    1. X-Restaurant header (slug) - POS terminals, kitchen displays, ordering sites
    2. DEFAULT_RESTAURANT_SLUG setting - single-restaurant and development deployments
    3. Fail with 400
    """

    EXEMPT_PREFIXES = ('/admin/', '/api/health/')

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        # Django admin operates across restaurants; health checks need no restaurant
        if request.path.startswith(self.EXEMPT_PREFIXES):
            request.restaurant = None
            set_current_restaurant(None)
            return self.get_response(request)

        try:
            restaurant = self.get_restaurant_from_request(request)
            request.restaurant = restaurant
            set_current_restaurant(restaurant)

            if not restaurant.is_active:
                return JsonResponse({
                    'error': 'Restaurant is inactive',
                    'code': 'RESTAURANT_INACTIVE'
                }, status=403)

            return self.get_response(request)

        except RestaurantNotFoundError as e:
            return JsonResponse({
                'error': str(e),
                'code': 'RESTAURANT_NOT_FOUND'
            }, status=400)

        finally:
            # Always clear the thread-local context, even if the view raised
            set_current_restaurant(None)

    def get_restaurant_from_request(self, request):
        slug = request.META.get('HTTP_X_RESTAURANT') or getattr(settings, 'DEFAULT_RESTAURANT_SLUG', None)
        if not slug:
            raise RestaurantNotFoundError("Missing X-Restaurant header")

        try:
            return Restaurant.objects.get(slug=slug)
        except Restaurant.DoesNotExist:
            logger.warning(f"Restaurant '{slug}' not found")
            raise RestaurantNotFoundError(f"Restaurant '{slug}' not found. Check X-Restaurant header value.")
