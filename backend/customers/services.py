"""
Customer services: resolve-or-create on first order and counter maintenance.
"""
import logging

from django.db import IntegrityError, transaction
from django.db.models import F, Q
from django.utils import timezone

from core_backend.utils.pii import PIIProtection
from .exceptions import CustomerValidationError
from .models import Customer, CustomerManager

logger = logging.getLogger(__name__)


class CustomerService:
    """Customer lookups used by order placement."""

    @staticmethod
    def find_customer(restaurant, phone=None, email=None):
        """Find a customer by phone first, then by email. Returns None when neither matches."""
        phone = CustomerManager.normalize_phone(phone)
        email = CustomerManager.normalize_email(email)
        if not phone and not email:
            return None

        queryset = Customer.all_objects.filter(restaurant=restaurant)
        if phone:
            customer = queryset.filter(phone=phone).first()
            if customer:
                return customer
        if email:
            return queryset.filter(email=email).first()
        return None

    @staticmethod
    def resolve_or_create(restaurant, name="", phone=None, email=None, lock=False) -> Customer:
        """
        Return the customer matching phone or email, creating one on first order.

        With lock=True the row is re-read with SELECT ... FOR UPDATE so that concurrent
        placements for the same customer serialize on it. Must then be called inside an
        atomic block.
        """
        phone = CustomerManager.normalize_phone(phone)
        email = CustomerManager.normalize_email(email)
        if not phone and not email:
            raise CustomerValidationError("A phone number or email is required to identify the customer")

        customer = CustomerService.find_customer(restaurant, phone=phone, email=email)

        if customer is None:
            try:
                with transaction.atomic():
                    customer = Customer.all_objects.create(
                        restaurant=restaurant,
                        name=name or "",
                        phone=phone,
                        email=email,
                    )
                logger.info(
                    f"Created customer {customer.id} for restaurant {restaurant.slug} "
                    f"({PIIProtection.mask_phone(phone) or PIIProtection.mask_email(email)})"
                )
            except IntegrityError:
                # Lost the race against a concurrent first order for the same contact
                customer = CustomerService.find_customer(restaurant, phone=phone, email=email)
                if customer is None:
                    raise
        else:
            CustomerService._fill_missing_contact(customer, name=name, phone=phone, email=email)

        if lock:
            customer = Customer.all_objects.select_for_update().get(pk=customer.pk)
        return customer

    @staticmethod
    def _fill_missing_contact(customer, name="", phone=None, email=None):
        """Complete blank contact fields without overwriting existing ones."""
        update_fields = []
        if name and not customer.name:
            customer.name = name
            update_fields.append('name')
        if phone and not customer.phone:
            if not Customer.all_objects.filter(restaurant_id=customer.restaurant_id, phone=phone).exists():
                customer.phone = phone
                update_fields.append('phone')
        if email and not customer.email:
            if not Customer.all_objects.filter(restaurant_id=customer.restaurant_id, email=email).exists():
                customer.email = email
                update_fields.append('email')
        if update_fields:
            customer.save(update_fields=update_fields + ['updated_at'])

    @staticmethod
    def record_order(customer: Customer, amount) -> None:
        """Increment the denormalized counters. Runs inside the placement transaction."""
        now = timezone.now()
        Customer.all_objects.filter(pk=customer.pk).update(
            total_orders=F('total_orders') + 1,
            total_spent=F('total_spent') + amount,
            last_order_date=now,
            updated_at=now,
        )
