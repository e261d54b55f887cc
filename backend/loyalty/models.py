import uuid

from django.core.validators import MinValueValidator
from django.db import models

from restaurants.managers import RestaurantManager


class LedgerEntryType(models.TextChoices):
    EARN = "earn", "Earn"
    REDEEM = "redeem", "Redeem"


class LoyaltyLedgerEntry(models.Model):
    """
    One append-only loyalty movement for a customer.

    Points are always stored as a positive magnitude; entry_type carries the sign.
    Expiry applies to earn entries and is evaluated when the balance is queried.
    Rows are never updated or deleted once written.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    restaurant = models.ForeignKey(
        'restaurants.Restaurant',
        on_delete=models.CASCADE,
        related_name='loyalty_entries'
    )
    customer = models.ForeignKey(
        'customers.Customer',
        on_delete=models.PROTECT,
        related_name='loyalty_entries'
    )
    order = models.ForeignKey(
        'orders.Order',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='loyalty_entries'
    )
    entry_type = models.CharField(max_length=10, choices=LedgerEntryType.choices)
    points = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    expires_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Only meaningful for earn entries"
    )
    created_at = models.DateTimeField(auto_now_add=True)

    objects = RestaurantManager()
    all_objects = models.Manager()

    class Meta:
        ordering = ['-created_at']
        verbose_name_plural = 'loyalty ledger entries'
        indexes = [
            models.Index(fields=['customer', 'entry_type', 'expires_at'], name='ledger_cust_type_exp_idx'),
            models.Index(fields=['restaurant', 'created_at'], name='ledger_rest_created_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(points__gt=0),
                name='loyalty_entry_points_positive',
            ),
        ]

    def __str__(self):
        return f"{self.get_entry_type_display()} {self.points} pts for customer {self.customer_id}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Loyalty ledger entries are append-only and cannot be modified")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Loyalty ledger entries are append-only and cannot be deleted")
