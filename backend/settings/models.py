from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models

from restaurants.managers import RestaurantManager


class RestaurantSettings(models.Model):
    """
    Per-restaurant business settings consumed by order placement.

    One row per restaurant. Read once per request through
    settings.config.load_ordering_settings(); business logic never queries this model directly.
    """

    restaurant = models.OneToOneField(
        'restaurants.Restaurant',
        on_delete=models.CASCADE,
        related_name='ordering_settings'
    )

    # === FINANCIAL ===
    currency = models.CharField(
        max_length=3,
        default="USD",
        help_text="ISO 4217 currency code stamped on every new order"
    )

    # === LOYALTY ===
    loyalty_enabled = models.BooleanField(
        default=False,
        help_text="When disabled, orders neither earn nor redeem points"
    )
    earn_rate = models.DecimalField(
        max_digits=6,
        decimal_places=4,
        default=Decimal("1.0000"),
        validators=[MinValueValidator(Decimal("0"))],
        help_text="Points earned per currency unit spent (floor applied)"
    )
    point_expiry_days = models.PositiveIntegerField(
        default=365,
        help_text="Days until earned points expire"
    )
    min_redeem_points = models.PositiveIntegerField(
        default=100,
        help_text="Smallest redemption a customer may request"
    )
    redeem_rate = models.PositiveIntegerField(
        default=100,
        validators=[MinValueValidator(1)],
        help_text="Points per redemption unit"
    )
    redeem_value = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("5.00"),
        help_text="Currency value of one redemption unit"
    )

    # === MESSAGING ===
    company_name = models.CharField(
        max_length=255,
        blank=True,
        help_text="Name used in confirmation messages (falls back to restaurant name)"
    )
    email_confirmations_enabled = models.BooleanField(default=True)
    sms_confirmations_enabled = models.BooleanField(default=False)
    feedback_requests_enabled = models.BooleanField(
        default=False,
        help_text="Send a feedback request once the kitchen completes an order"
    )

    updated_at = models.DateTimeField(auto_now=True)

    objects = RestaurantManager()
    all_objects = models.Manager()

    class Meta:
        verbose_name = "Restaurant Settings"
        verbose_name_plural = "Restaurant Settings"

    def __str__(self):
        return f"Settings for {self.restaurant}"
