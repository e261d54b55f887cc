import uuid
from django.db import models


class Restaurant(models.Model):
    """
    Root entity for restaurant scoping.
    Every table, order, kitchen item, customer and ledger entry belongs to exactly one restaurant.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(
        max_length=255,
        help_text="Display name for the restaurant (e.g., Joe's Pizza)"
    )
    slug = models.SlugField(
        unique=True,
        help_text="URL-safe identifier sent by clients in the X-Restaurant header"
    )
    contact_email = models.EmailField(blank=True)
    contact_phone = models.CharField(max_length=50, blank=True)

    is_active = models.BooleanField(
        default=True,
        help_text="Inactive restaurants cannot place or advance orders"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'restaurants'
        ordering = ['name']
        indexes = [
            models.Index(fields=['is_active'], name='restaurant_active_idx'),
        ]

    def __str__(self):
        return self.name

    @property
    def display_group_name(self):
        """Channels group that every display session of this restaurant joins."""
        return display_group_name(self.id)


def display_group_name(restaurant_id) -> str:
    """Channels group joined by every display session of a restaurant."""
    hex_id = restaurant_id.hex if hasattr(restaurant_id, 'hex') else str(restaurant_id).replace('-', '')
    return f"restaurant_{hex_id}_displays"
