from django.core.validators import MinValueValidator
from django.db import models

from restaurants.managers import RestaurantManager


class TableStatus(models.TextChoices):
    AVAILABLE = "available", "Available"
    OCCUPIED = "occupied", "Occupied"
    RESERVED = "reserved", "Reserved"
    INACTIVE = "inactive", "Inactive"


class DiningTable(models.Model):
    """
    A physical table in a restaurant.

    A table becomes occupied only when a dine-in order is attached to it and returns to
    available only when that order is completed or cancelled. Both transitions go
    through tables.services.TableService.
    """

    restaurant = models.ForeignKey(
        'restaurants.Restaurant',
        on_delete=models.CASCADE,
        related_name='tables'
    )
    number = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    capacity = models.PositiveSmallIntegerField(default=4)
    status = models.CharField(
        max_length=20,
        choices=TableStatus.choices,
        default=TableStatus.AVAILABLE
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = RestaurantManager()
    all_objects = models.Manager()

    class Meta:
        db_table = 'dining_tables'
        ordering = ['number']
        indexes = [
            models.Index(fields=['restaurant', 'status'], name='table_rest_status_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['restaurant', 'number'],
                name='unique_table_number_per_restaurant',
            ),
        ]

    def __str__(self):
        return f"Table {self.number} ({self.get_status_display()})"
