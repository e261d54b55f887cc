"""
Per-request configuration snapshot.

Order placement reads restaurant settings exactly once, before the atomic write begins,
and passes the resulting immutable snapshot down to every collaborator. Nothing inside the
transaction goes back to the settings table.
"""

from dataclasses import dataclass
from decimal import Decimal
import logging

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrderingSettings:
    currency: str = "USD"
    loyalty_enabled: bool = False
    earn_rate: Decimal = Decimal("1")
    point_expiry_days: int = 365
    min_redeem_points: int = 100
    redeem_rate: int = 100
    redeem_value: Decimal = Decimal("5.00")
    company_name: str = ""
    email_confirmations_enabled: bool = True
    sms_confirmations_enabled: bool = False
    feedback_requests_enabled: bool = False

    def loyalty_config(self) -> dict:
        """Loyalty part of the snapshot, in the shape ordering clients expect."""
        return {
            "enabled": self.loyalty_enabled,
            "earnRate": str(self.earn_rate),
            "redeemRate": self.redeem_rate,
            "redeemValue": str(self.redeem_value),
            "minRedeemPoints": self.min_redeem_points,
            "pointExpiryDays": self.point_expiry_days,
        }


def load_ordering_settings(restaurant) -> OrderingSettings:
    """
    Load the settings snapshot for a restaurant, creating the default settings row
    on first access.
    """
    from .models import RestaurantSettings

    settings_obj, created = RestaurantSettings.all_objects.get_or_create(restaurant=restaurant)
    if created:
        logger.info(f"Created default RestaurantSettings for restaurant {restaurant.slug}")

    return OrderingSettings(
        currency=settings_obj.currency,
        loyalty_enabled=settings_obj.loyalty_enabled,
        earn_rate=settings_obj.earn_rate,
        point_expiry_days=settings_obj.point_expiry_days,
        min_redeem_points=settings_obj.min_redeem_points,
        redeem_rate=settings_obj.redeem_rate,
        redeem_value=settings_obj.redeem_value,
        company_name=settings_obj.company_name or restaurant.name,
        email_confirmations_enabled=settings_obj.email_confirmations_enabled,
        sms_confirmations_enabled=settings_obj.sms_confirmations_enabled,
        feedback_requests_enabled=settings_obj.feedback_requests_enabled,
    )
