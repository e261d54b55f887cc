"""
Customer identity and denormalized order counters.
"""
import uuid
from decimal import Decimal

from django.db import models
from django.db.models import Q

from core_backend.utils.pii import PIIProtection
from restaurants.managers import RestaurantManager


class CustomerManager(RestaurantManager):
    """Restaurant-scoped manager with contact normalization helpers."""

    @staticmethod
    def normalize_email(email):
        if email:
            email = email.strip().lower()
        return email or None

    @staticmethod
    def normalize_phone(phone):
        if phone:
            phone = ''.join(ch for ch in phone.strip() if ch.isdigit() or ch == '+')
        return phone or None


class Customer(models.Model):
    """
    A restaurant's customer, identified by phone number and/or email.

    A phone number or an email maps to at most one customer per restaurant.
    total_orders / total_spent / last_order_date are maintained inside the
    order placement transaction, never recomputed on read.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    restaurant = models.ForeignKey(
        'restaurants.Restaurant',
        on_delete=models.CASCADE,
        related_name='customers'
    )

    name = models.CharField(max_length=255, blank=True)
    phone = models.CharField(max_length=20, blank=True, null=True)
    email = models.EmailField(blank=True, null=True)

    # Denormalized counters
    total_orders = models.PositiveIntegerField(default=0)
    total_spent = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    last_order_date = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = CustomerManager()
    all_objects = models.Manager()

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['restaurant', 'phone'], name='customer_rest_phone_idx'),
            models.Index(fields=['restaurant', 'email'], name='customer_rest_email_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['restaurant', 'phone'],
                condition=Q(phone__isnull=False),
                name='unique_customer_phone_per_restaurant',
            ),
            models.UniqueConstraint(
                fields=['restaurant', 'email'],
                condition=Q(email__isnull=False),
                name='unique_customer_email_per_restaurant',
            ),
        ]

    def __str__(self):
        return f"{self.name or 'Customer'} ({PIIProtection.mask_phone(self.phone) or PIIProtection.mask_email(self.email)})"
