"""
Root conftest.py for all backend tests.

This file makes fixtures available to all test files across all apps.
"""
from decimal import Decimal
from unittest.mock import Mock

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from restaurants.managers import set_current_restaurant


# ============================================================================
# AUTO-USE FIXTURES (Run automatically for every test)
# ============================================================================

@pytest.fixture(autouse=True)
def reset_restaurant_context():
    """
    Reset restaurant context after each test.

    CRITICAL: This prevents restaurant context from leaking between tests.
    If it leaks, scoped managers return rows they should not.
    """
    yield
    set_current_restaurant(None)


# ============================================================================
# RESTAURANTS AND SETTINGS
# ============================================================================

@pytest.fixture
def restaurant(db):
    from restaurants.models import Restaurant

    return Restaurant.objects.create(name="Harbor Grill", slug="harbor-grill", is_active=True)


@pytest.fixture
def other_restaurant(db):
    from restaurants.models import Restaurant

    return Restaurant.objects.create(name="Corner Cafe", slug="corner-cafe", is_active=True)


@pytest.fixture
def restaurant_settings(restaurant):
    """Loyalty on, 0.1 points per currency unit, 100 points = 5.00"""
    from settings.models import RestaurantSettings

    return RestaurantSettings.all_objects.create(
        restaurant=restaurant,
        currency="USD",
        loyalty_enabled=True,
        earn_rate=Decimal("0.1"),
        point_expiry_days=365,
        min_redeem_points=100,
        redeem_rate=100,
        redeem_value=Decimal("5.00"),
        company_name="Harbor Grill",
        email_confirmations_enabled=True,
        sms_confirmations_enabled=False,
        feedback_requests_enabled=True,
    )


@pytest.fixture
def ordering_settings(restaurant_settings):
    from settings.config import load_ordering_settings

    return load_ordering_settings(restaurant_settings.restaurant)


# ============================================================================
# TABLES, CUSTOMERS, USERS
# ============================================================================

@pytest.fixture
def tables(restaurant):
    """Tables 1-6; every one available"""
    from tables.models import DiningTable

    return {
        number: DiningTable.all_objects.create(restaurant=restaurant, number=number, capacity=4)
        for number in range(1, 7)
    }


@pytest.fixture
def table_5(tables):
    return tables[5]


@pytest.fixture
def customer(restaurant):
    from customers.models import Customer

    return Customer.all_objects.create(
        restaurant=restaurant,
        name="Dana Reyes",
        phone="+15550100",
        email="dana@example.com",
    )


@pytest.fixture
def staff_user(db):
    User = get_user_model()
    return User.objects.create_user(
        username="line-cook",
        password="cook-password",
        first_name="Sam",
        last_name="Cook",
    )


# ============================================================================
# FULFILLMENT COLLABORATORS
# ============================================================================

@pytest.fixture
def notifier():
    from kds.notifier import RecordingNotifier

    return RecordingNotifier()


@pytest.fixture
def messaging():
    """Stands in for MessagingGateway; records what would have been queued"""
    gateway = Mock()
    gateway.queue_order_confirmation.return_value = True
    gateway.queue_feedback_request.return_value = True
    return gateway


@pytest.fixture
def fulfillment(notifier, messaging):
    from orders.services import FulfillmentService

    return FulfillmentService(notifier=notifier, messaging=messaging)


@pytest.fixture
def place_order(restaurant, ordering_settings, fulfillment):
    """
    Place an order with sensible defaults. Keyword arguments override payload keys.
    """

    def _place(**overrides):
        payload = {
            "orderType": "pickup",
            "items": [{"name": "Fish Tacos", "quantity": 2, "price": "12.50"}],
            "total": "25.00",
            "customerDetails": {"name": "Dana Reyes", "phone": "+15550100", "email": "dana@example.com"},
        }
        payload.update(overrides)
        return fulfillment.place_order(restaurant, payload, ordering_settings=ordering_settings)

    return _place


# ============================================================================
# API CLIENTS
# ============================================================================

@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def restaurant_client(restaurant):
    """API client that sends the X-Restaurant header on every request"""
    client = APIClient()
    client.credentials(HTTP_X_RESTAURANT=restaurant.slug)
    return client
