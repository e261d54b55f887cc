"""
Loyalty ledger services.

The ledger only ever inserts. Balances are computed on read, with expiry
evaluated against the database clock passed in as ``as_of``.
"""
import logging
import math
from datetime import timedelta
from decimal import Decimal, ROUND_FLOOR

from django.db.models import Q, Sum
from django.db.models.functions import Coalesce
from django.utils import timezone

from .models import LedgerEntryType, LoyaltyLedgerEntry

logger = logging.getLogger(__name__)


class LedgerService:
    """Balance computation and append-only earn/redeem inserts."""

    @staticmethod
    def get_available_balance(customer, as_of=None) -> int:
        """
        Unexpired earn points minus all redeemed points, in one aggregate query.
        """
        as_of = as_of or timezone.now()
        totals = LoyaltyLedgerEntry.all_objects.filter(customer=customer).aggregate(
            earned=Coalesce(
                Sum(
                    'points',
                    filter=Q(entry_type=LedgerEntryType.EARN)
                    & (Q(expires_at__isnull=True) | Q(expires_at__gt=as_of)),
                ),
                0,
            ),
            redeemed=Coalesce(
                Sum('points', filter=Q(entry_type=LedgerEntryType.REDEEM)),
                0,
            ),
        )
        return totals['earned'] - totals['redeemed']

    @staticmethod
    def record_earn(customer, points: int, expiry_days: int, order=None) -> LoyaltyLedgerEntry:
        if points <= 0:
            raise ValueError("Earned points must be positive")

        expires_at = timezone.now() + timedelta(days=expiry_days)
        entry = LoyaltyLedgerEntry.all_objects.create(
            restaurant_id=customer.restaurant_id,
            customer=customer,
            order=order,
            entry_type=LedgerEntryType.EARN,
            points=points,
            expires_at=expires_at,
        )
        logger.info(
            f"Recorded earn of {points} points for customer {customer.id} "
            f"(expires {expires_at.date().isoformat()})"
        )
        return entry

    @staticmethod
    def record_redeem(customer, points: int, order=None) -> LoyaltyLedgerEntry:
        """
        Insert a redeem entry. Callers must have checked the balance inside the same
        transaction, with the customer row locked.
        """
        if points <= 0:
            raise ValueError("Redeemed points must be positive")

        entry = LoyaltyLedgerEntry.all_objects.create(
            restaurant_id=customer.restaurant_id,
            customer=customer,
            order=order,
            entry_type=LedgerEntryType.REDEEM,
            points=points,
        )
        logger.info(f"Recorded redeem of {points} points for customer {customer.id}")
        return entry

    @staticmethod
    def earned_points_for(total, ordering_settings) -> int:
        """floor(total x earn_rate); zero when loyalty is disabled."""
        if not ordering_settings.loyalty_enabled:
            return 0
        points = (Decimal(str(total)) * ordering_settings.earn_rate).to_integral_value(rounding=ROUND_FLOOR)
        return max(int(points), 0)

    @staticmethod
    def redemption_discount(points: int, ordering_settings) -> Decimal:
        """Currency value of redeemed points: whole redeem units times redeem_value."""
        if points <= 0 or ordering_settings.redeem_rate <= 0:
            return Decimal("0.00")
        units = math.floor(points / ordering_settings.redeem_rate)
        return (Decimal(units) * ordering_settings.redeem_value).quantize(Decimal("0.01"))

    @staticmethod
    def history(customer, limit=50):
        return LoyaltyLedgerEntry.all_objects.filter(customer=customer).order_by('-created_at')[:limit]
