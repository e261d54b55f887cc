import uuid

from django.conf import settings
from django.db import models
from django.utils import timezone

from restaurants.managers import RestaurantManager


class KitchenStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    PREPARING = 'preparing', 'Preparing'
    READY = 'ready', 'Ready'
    COMPLETED = 'completed', 'Completed'
    CANCELLED = 'cancelled', 'Cancelled'


# Legal forward moves. Cancellation is allowed from any non-terminal state.
KITCHEN_TRANSITIONS = {
    KitchenStatus.PENDING: (KitchenStatus.PREPARING, KitchenStatus.CANCELLED),
    KitchenStatus.PREPARING: (KitchenStatus.READY, KitchenStatus.CANCELLED),
    KitchenStatus.READY: (KitchenStatus.COMPLETED, KitchenStatus.CANCELLED),
    KitchenStatus.COMPLETED: (),
    KitchenStatus.CANCELLED: (),
}

TERMINAL_STATUSES = (KitchenStatus.COMPLETED, KitchenStatus.CANCELLED)
ACTIVE_STATUSES = (KitchenStatus.PENDING, KitchenStatus.PREPARING, KitchenStatus.READY)


class KitchenWorkItem(models.Model):
    """One kitchen ticket per order, with its own preparation lifecycle"""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    restaurant = models.ForeignKey(
        'restaurants.Restaurant',
        on_delete=models.CASCADE,
        related_name='kitchen_work_items'
    )
    order = models.OneToOneField('orders.Order', on_delete=models.CASCADE, related_name='kitchen_work_item')
    status = models.CharField(max_length=20, choices=KitchenStatus.choices, default=KitchenStatus.PENDING)

    assigned_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='dispatched_kitchen_items'
    )
    staff = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='kitchen_items'
    )

    # Timing fields
    assigned_at = models.DateTimeField(default=timezone.now)
    started_at = models.DateTimeField(null=True, blank=True)
    ready_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    notes = models.TextField(blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = RestaurantManager()
    all_objects = models.Manager()

    class Meta:
        db_table = 'kitchen_work_items'
        ordering = ['assigned_at']
        indexes = [
            models.Index(fields=['restaurant', 'status'], name='kitchen_rest_status_idx'),
            models.Index(fields=['restaurant', 'completed_at'], name='kitchen_rest_completed_idx'),
        ]

    def __str__(self):
        return f"Kitchen item for {self.order.order_number} - {self.status}"

    @property
    def is_terminal(self):
        return self.status in TERMINAL_STATUSES

    @property
    def prep_time_minutes(self):
        """Minutes from start to ready, once both are known"""
        if self.started_at and self.ready_at:
            return int((self.ready_at - self.started_at).total_seconds() / 60)
        return None
