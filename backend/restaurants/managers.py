from django.db import models
from threading import local

# Thread-local storage for current restaurant
_thread_locals = local()


def set_current_restaurant(restaurant):
    """
    Set the current restaurant for this thread.

    Called by RestaurantMiddleware and Celery tasks to establish
    restaurant context for the current request/task.
    """
    _thread_locals.restaurant = restaurant


def get_current_restaurant():
    """
    Get the current restaurant for this thread.

    Returns:
        Restaurant instance or None if no restaurant context is set
    """
    return getattr(_thread_locals, 'restaurant', None)


class RestaurantManager(models.Manager):
    """
    Automatically filters querysets by current restaurant.

    FAILS CLOSED: Returns empty queryset if no restaurant context is set.

    Usage:
        class DiningTable(models.Model):
            restaurant = models.ForeignKey('restaurants.Restaurant', on_delete=models.CASCADE)

            objects = RestaurantManager()  # Default manager (restaurant-filtered)
            all_objects = models.Manager()  # Bypass filter for services given an explicit restaurant

        # In view:
        tables = DiningTable.objects.all()  # Automatically filtered by request.restaurant

        # In a service that receives the restaurant explicitly:
        tables = DiningTable.all_objects.filter(restaurant=restaurant)
    """

    def get_queryset(self):
        restaurant = get_current_restaurant()

        if restaurant:
            return super().get_queryset().filter(restaurant=restaurant)

        # FAIL CLOSED: no restaurant context, no rows
        return super().get_queryset().none()
