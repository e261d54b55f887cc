import uuid
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils.translation import gettext_lazy as _

from restaurants.managers import RestaurantManager
from .fields import LineItemsField
from .line_items import line_items_total


class OrderType(models.TextChoices):
    DINE_IN = "dine-in", _("Dine-in")
    PICKUP = "pickup", _("Pickup")
    POS_COUNTER = "pos-counter", _("POS Counter")


class OrderStatus(models.TextChoices):
    PENDING = "pending", _("Pending")
    PREPARING = "preparing", _("Preparing")
    READY = "ready", _("Ready")
    COMPLETED = "completed", _("Completed")
    CANCELLED = "cancelled", _("Cancelled")


class PaymentStatus(models.TextChoices):
    UNPAID = "unpaid", _("Unpaid")
    PAID = "paid", _("Paid")
    CASH_IN_HAND = "cash_in_hand", _("Cash in Hand")


class Order(models.Model):
    """
    Customer-facing order record.

    Status here mirrors the kitchen work item and is only advanced by the fulfillment
    service. Line items are a typed sequence stored in one JSON column.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    restaurant = models.ForeignKey(
        'restaurants.Restaurant',
        on_delete=models.CASCADE,
        related_name='orders'
    )
    order_number = models.CharField(max_length=20)

    table = models.ForeignKey(
        'tables.DiningTable',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='orders'
    )
    customer = models.ForeignKey(
        'customers.Customer',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='orders'
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='created_orders'
    )

    order_type = models.CharField(max_length=20, choices=OrderType.choices)
    line_items = LineItemsField()
    total_amount = models.DecimalField(max_digits=10, decimal_places=2)
    currency = models.CharField(max_length=3, default="USD")

    status = models.CharField(max_length=20, choices=OrderStatus.choices, default=OrderStatus.PENDING)
    payment_status = models.CharField(max_length=20, choices=PaymentStatus.choices, default=PaymentStatus.UNPAID)
    payment_method = models.CharField(max_length=30, blank=True)

    # Verification artifacts
    otp = models.CharField(max_length=12, null=True, blank=True)
    qr_code = models.TextField(blank=True)

    # Loyalty
    discount_used = models.JSONField(
        null=True,
        blank=True,
        help_text="Loyalty usage: {'points': int, 'discount': str}"
    )
    points_earned = models.PositiveIntegerField(default=0)

    # Contact snapshot at placement time
    customer_name = models.CharField(max_length=255, blank=True)
    customer_phone = models.CharField(max_length=20, blank=True)
    customer_email = models.EmailField(blank=True)

    pickup_time = models.DateTimeField(null=True, blank=True)
    special_instructions = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    objects = RestaurantManager()
    all_objects = models.Manager()

    class Meta:
        ordering = ["-created_at", "order_number"]
        verbose_name = _("Order")
        verbose_name_plural = _("Orders")
        indexes = [
            models.Index(fields=['restaurant', 'status'], name='order_rest_status_idx'),
            models.Index(fields=['restaurant', 'order_type'], name='order_rest_type_idx'),
            models.Index(fields=['restaurant', '-created_at'], name='order_rest_created_idx'),
            models.Index(fields=['table', 'status'], name='order_table_status_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["restaurant", "order_number"],
                name="unique_order_number_per_restaurant",
            ),
        ]

    def __str__(self):
        return f"Order {self.order_number} ({self.order_type}) - {self.status}"

    @property
    def is_terminal(self):
        return self.status in (OrderStatus.COMPLETED, OrderStatus.CANCELLED)

    @property
    def items_subtotal(self) -> Decimal:
        return line_items_total(self.line_items)

    @property
    def discount_amount(self) -> Decimal:
        if not self.discount_used:
            return Decimal("0.00")
        return Decimal(str(self.discount_used.get('discount', "0")))
