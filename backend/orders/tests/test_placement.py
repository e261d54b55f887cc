"""
Order placement tests.

Placement writes the order, the kitchen work item, the table occupancy, the
customer counters and the loyalty entries in one transaction. These tests cover
the happy paths for each channel, the rejections, and that a failure at any
step leaves nothing behind.
"""
from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

import pytest
from django.utils import timezone

from customers.models import Customer
from kds.models import KitchenStatus, KitchenWorkItem
from loyalty.exceptions import InsufficientLoyaltyBalance
from loyalty.models import LedgerEntryType, LoyaltyLedgerEntry
from loyalty.services import LedgerService
from orders.exceptions import InvalidOrderPayload, PersistenceConflict
from orders.line_items import LineItem
from orders.models import Order, OrderStatus, OrderType
from orders.services import FulfillmentService, PlacementRequest
from orders.verification import parse_qr_payload
from tables.exceptions import TableUnavailable
from tables.models import DiningTable, TableStatus


def dine_in_payload(table_number=5, total="50.00", **overrides):
    payload = {
        "orderType": "dine-in",
        "tableNumber": table_number,
        "items": [
            {"name": "Ribeye", "quantity": 1, "price": "38.00"},
            {"name": "House Salad", "quantity": 1, "price": "10.00", "selectedAddons": [{"name": "Feta", "price": "2.00"}]},
        ],
        "total": total,
        "customerDetails": {"name": "Dana Reyes", "email": "dana@example.com"},
    }
    payload.update(overrides)
    return payload


def assert_nothing_written(restaurant):
    assert Order.all_objects.filter(restaurant=restaurant).count() == 0
    assert KitchenWorkItem.all_objects.filter(restaurant=restaurant).count() == 0
    assert LoyaltyLedgerEntry.all_objects.filter(restaurant=restaurant).count() == 0


@pytest.mark.django_db
class TestDineInPlacement:

    def test_dine_in_order_occupies_table_and_earns_points(self, restaurant, ordering_settings, table_5, fulfillment):
        """
        CRITICAL: A dine-in order for table 5 with total 50.00 at earn rate 0.1

        Business Impact: order goes straight to the kitchen, the table is held and
        the customer earns exactly 5 points
        """
        result = fulfillment.place_order(restaurant, dine_in_payload(), ordering_settings=ordering_settings)

        order = Order.all_objects.get(pk=result.order.pk)
        assert order.status == OrderStatus.PREPARING
        assert order.table_id == table_5.id
        assert order.total_amount == Decimal("50.00")
        assert order.points_earned == 5

        table_5.refresh_from_db()
        assert table_5.status == TableStatus.OCCUPIED

        entries = list(LoyaltyLedgerEntry.all_objects.filter(order=order))
        assert len(entries) == 1
        assert entries[0].entry_type == LedgerEntryType.EARN
        assert entries[0].points == 5

        assert result.work_item.status == KitchenStatus.PENDING
        assert result.points_earned == 5
        assert result.warnings == ()

    def test_missing_table_is_rejected(self, restaurant, ordering_settings, tables, fulfillment):
        with pytest.raises(TableUnavailable) as exc_info:
            fulfillment.place_order(restaurant, dine_in_payload(table_number=42), ordering_settings=ordering_settings)

        assert exc_info.value.details["reason"] == TableUnavailable.MISSING
        assert_nothing_written(restaurant)

    def test_occupied_table_is_rejected(self, restaurant, ordering_settings, table_5, fulfillment):
        fulfillment.place_order(restaurant, dine_in_payload(), ordering_settings=ordering_settings)

        with pytest.raises(TableUnavailable) as exc_info:
            fulfillment.place_order(restaurant, dine_in_payload(), ordering_settings=ordering_settings)

        assert exc_info.value.details["reason"] == TableUnavailable.BUSY
        assert exc_info.value.details["currentStatus"] == TableStatus.OCCUPIED
        assert Order.all_objects.filter(restaurant=restaurant).count() == 1

    def test_inactive_table_is_rejected(self, restaurant, ordering_settings, table_5, fulfillment):
        DiningTable.all_objects.filter(pk=table_5.pk).update(status=TableStatus.INACTIVE, is_active=False)

        with pytest.raises(TableUnavailable) as exc_info:
            fulfillment.place_order(restaurant, dine_in_payload(), ordering_settings=ordering_settings)

        assert exc_info.value.details["reason"] == TableUnavailable.INACTIVE
        assert_nothing_written(restaurant)

    def test_table_taken_between_check_and_write(self, restaurant, ordering_settings, table_5, fulfillment):
        """The guarded update is the real check; the precondition read is only a hint"""
        available = {"tableNumber": 5, "exists": True, "active": True, "available": True, "status": "available"}
        DiningTable.all_objects.filter(pk=table_5.pk).update(status=TableStatus.OCCUPIED)

        with patch("orders.services.fulfillment_service.TableService.check_availability", return_value=available):
            with pytest.raises(TableUnavailable):
                fulfillment.place_order(restaurant, dine_in_payload(), ordering_settings=ordering_settings)

        assert_nothing_written(restaurant)

    def test_tables_are_scoped_to_restaurant(self, restaurant, other_restaurant, ordering_settings, fulfillment):
        DiningTable.all_objects.create(restaurant=other_restaurant, number=5)

        with pytest.raises(TableUnavailable):
            fulfillment.place_order(restaurant, dine_in_payload(), ordering_settings=ordering_settings)

    def test_two_placements_for_one_table_only_one_wins(self, restaurant, ordering_settings, table_5, fulfillment):
        """Sequential form of the double-booking race; the threaded form runs on PostgreSQL"""
        outcomes = []
        for _ in range(2):
            try:
                outcomes.append(
                    fulfillment.place_order(restaurant, dine_in_payload(), ordering_settings=ordering_settings)
                )
            except TableUnavailable as exc:
                outcomes.append(exc)

        assert sum(1 for outcome in outcomes if isinstance(outcome, TableUnavailable)) == 1
        assert Order.all_objects.filter(table=table_5).count() == 1


@pytest.mark.django_db
class TestPickupAndCounterPlacement:

    def test_pickup_order_starts_pending_with_otp_and_qr(self, restaurant, place_order):
        result = place_order()

        order = result.order
        assert order.status == OrderStatus.PENDING
        assert order.table_id is None
        assert order.otp and order.otp.isdigit() and len(order.otp) == 6
        assert order.qr_code.startswith("data:image/png;base64,")

    def test_pickup_response_exposes_code_to_the_customer(self, place_order):
        result = place_order()

        response = result.to_response()
        assert response["orderNumber"] == "ORD-00001"
        assert response["otp"] == result.order.otp
        assert response["qrCodeUrl"] == result.order.qr_code
        assert response["pointsEarned"] == 2
        assert response["warnings"] == []

    def test_pos_counter_order_without_customer(self, restaurant, place_order):
        result = place_order(orderType="pos-counter", customerDetails={}, total="7.00",
                             items=[{"name": "Coffee", "quantity": 2, "price": "3.50"}])

        assert result.order.status == OrderStatus.PREPARING
        assert result.order.customer_id is None
        assert result.points_earned == 0
        assert LoyaltyLedgerEntry.all_objects.count() == 0

    def test_order_numbers_are_sequential_per_restaurant(self, restaurant, other_restaurant, place_order, fulfillment):
        first = place_order()
        second = place_order()
        elsewhere = fulfillment.place_order(
            other_restaurant,
            {
                "orderType": "pos-counter",
                "items": [{"name": "Tea", "quantity": 1, "price": "2.00"}],
                "total": "2.00",
            },
        )

        assert first.order.order_number == "ORD-00001"
        assert second.order.order_number == "ORD-00002"
        assert elsewhere.order.order_number == "ORD-00001"

    def test_order_number_collision_is_retried(self, restaurant, place_order):
        first = place_order()

        with patch("orders.services.fulfillment_service.next_order_number",
                   side_effect=[first.order.order_number, "ORD-00002"]):
            second = place_order()

        assert second.order.order_number == "ORD-00002"

    def test_order_number_retries_are_bounded(self, restaurant, place_order):
        first = place_order()

        with patch("orders.services.fulfillment_service.next_order_number", return_value=first.order.order_number):
            with pytest.raises(PersistenceConflict):
                place_order()

        assert Order.all_objects.filter(restaurant=restaurant).count() == 1

    def test_currency_comes_from_settings_snapshot(self, restaurant, ordering_settings, fulfillment):
        from dataclasses import replace

        snapshot = replace(ordering_settings, currency="EUR")
        result = fulfillment.place_order(
            restaurant,
            {"orderType": "pos-counter", "items": [{"name": "Tea", "quantity": 1, "price": "2.00"}], "total": "2.00"},
            ordering_settings=snapshot,
        )
        assert result.order.currency == "EUR"

    def test_qr_payload_identifies_order_and_customer(self, place_order):
        result = place_order()

        from orders.verification import build_qr_payload

        data = parse_qr_payload(build_qr_payload(result.order))
        assert data["orderId"] == str(result.order.id)
        assert data["otp"] == result.order.otp
        assert data["userId"] == str(result.order.customer_id)


@pytest.mark.django_db
class TestPayloadValidation:

    @pytest.mark.parametrize("overrides, field", [
        ({"items": []}, "items"),
        ({"total": "0.00"}, "total"),
        ({"orderType": "delivery"}, "orderType"),
        ({"customerDetails": {"email": "dana@example.com"}}, "customerDetails"),
        ({"tableNumber": 3}, "tableNumber"),
        ({"items": [{"name": "Tea", "quantity": 0, "price": "2.00"}]}, "items"),
    ])
    def test_invalid_pickup_payloads(self, restaurant, place_order, overrides, field):
        with pytest.raises(InvalidOrderPayload) as exc_info:
            place_order(**overrides)

        assert field in exc_info.value.details["fields"]
        assert_nothing_written(restaurant)

    def test_dine_in_requires_table_number(self, restaurant, ordering_settings, fulfillment):
        payload = dine_in_payload()
        del payload["tableNumber"]

        with pytest.raises(InvalidOrderPayload) as exc_info:
            fulfillment.place_order(restaurant, payload, ordering_settings=ordering_settings)

        assert "tableNumber" in exc_info.value.details["fields"]

    def test_placement_request_from_payload(self):
        request = PlacementRequest.from_payload(
            dine_in_payload(loyaltyPoints={"usePoints": True, "pointsToRedeem": 200})
        )

        assert request.order_type == OrderType.DINE_IN
        assert request.table_number == 5
        assert request.redeem_points == 200
        assert request.customer_email == "dana@example.com"
        assert request.customer_phone is None
        assert len(request.line_items) == 2

    def test_points_ignored_unless_use_points_is_set(self):
        request = PlacementRequest.from_payload(
            dine_in_payload(loyaltyPoints={"usePoints": False, "pointsToRedeem": 200})
        )
        assert request.redeem_points == 0

    @pytest.mark.parametrize("overrides, field", [
        ({"total": Decimal("0.00")}, "total"),
        ({"total": Decimal("-20.00")}, "total"),
        ({"line_items": ()}, "items"),
        ({"redeem_points": -50}, "loyaltyPoints"),
        ({"customer_phone": None}, "customerDetails"),
        ({"order_type": OrderType.DINE_IN}, "tableNumber"),
        ({"table_number": 3}, "tableNumber"),
        ({"order_type": "delivery"}, "orderType"),
    ])
    def test_typed_requests_are_validated(self, restaurant, ordering_settings, fulfillment, notifier, customer,
                                          overrides, field):
        """
        HIGH: callers that build a PlacementRequest directly get the same checks as HTTP clients

        Business Impact: a zero or negative total never reaches the kitchen or the customer counters
        """
        fields = {
            "order_type": OrderType.PICKUP,
            "line_items": (LineItem(name="Fish Tacos", quantity=2, unit_price="12.50"),),
            "total": Decimal("25.00"),
            "customer_name": "Dana Reyes",
            "customer_phone": "+15550100",
        }
        fields.update(overrides)

        with pytest.raises(InvalidOrderPayload) as exc_info:
            fulfillment.place_order(restaurant, PlacementRequest(**fields), ordering_settings=ordering_settings)

        assert field in exc_info.value.details["fields"]
        assert_nothing_written(restaurant)
        assert notifier.events == []
        customer.refresh_from_db()
        assert customer.total_orders == 0

    def test_valid_typed_request_is_placed(self, restaurant, ordering_settings, fulfillment):
        request = PlacementRequest(
            order_type=OrderType.POS_COUNTER,
            line_items=(LineItem(name="Tea", quantity=1, unit_price="2.00"),),
            total=Decimal("2.00"),
        )

        result = fulfillment.place_order(restaurant, request, ordering_settings=ordering_settings)

        assert result.order.total_amount == Decimal("2.00")
        assert result.order.status == OrderStatus.PREPARING



@pytest.mark.django_db
class TestCustomerResolution:

    def test_first_order_creates_customer(self, restaurant, place_order):
        result = place_order()

        customer = Customer.all_objects.get(restaurant=restaurant)
        assert result.order.customer_id == customer.id
        assert customer.phone == "+15550100"
        assert customer.total_orders == 1
        assert customer.total_spent == Decimal("25.00")

    def test_repeat_order_reuses_customer(self, restaurant, customer, place_order):
        place_order()
        place_order(customerDetails={"phone": "+1 555 0100"})

        customer.refresh_from_db()
        assert Customer.all_objects.filter(restaurant=restaurant).count() == 1
        assert customer.total_orders == 2
        assert customer.total_spent == Decimal("50.00")
        assert customer.last_order_date is not None


@pytest.mark.django_db
class TestLoyaltyRedemption:

    def give_points(self, customer, points):
        LedgerService.record_earn(customer, points, expiry_days=30)

    def test_insufficient_balance_is_rejected(self, restaurant, customer, place_order):
        """
        CRITICAL: balance 100, redemption of 150

        Business Impact: nothing is written, not even the earn entry for the new order
        """
        self.give_points(customer, 100)

        with pytest.raises(InsufficientLoyaltyBalance) as exc_info:
            place_order(loyaltyPoints={"usePoints": True, "pointsToRedeem": 150})

        assert exc_info.value.details == {"requested": 150, "available": 100}
        assert Order.all_objects.filter(restaurant=restaurant).count() == 0
        assert LoyaltyLedgerEntry.all_objects.filter(customer=customer).count() == 1
        assert LedgerService.get_available_balance(customer) == 100

    def test_redemption_records_discount_and_both_entries(self, restaurant, customer, place_order):
        self.give_points(customer, 250)

        result = place_order(loyaltyPoints={"usePoints": True, "pointsToRedeem": 200}, total="40.00")

        order = result.order
        assert order.discount_used == {"points": 200, "discount": "10.00"}
        assert order.discount_amount == Decimal("10.00")
        assert order.points_earned == 4

        redeem = LoyaltyLedgerEntry.all_objects.get(order=order, entry_type=LedgerEntryType.REDEEM)
        earn = LoyaltyLedgerEntry.all_objects.get(order=order, entry_type=LedgerEntryType.EARN)
        assert redeem.points == 200
        assert earn.points == 4
        assert LedgerService.get_available_balance(customer) == 250 - 200 + 4

    def test_second_redemption_of_same_balance_is_rejected(self, restaurant, customer, place_order):
        self.give_points(customer, 100)
        redeem_all = {"usePoints": True, "pointsToRedeem": 100}

        first = place_order(loyaltyPoints=redeem_all)
        with pytest.raises(InsufficientLoyaltyBalance):
            place_order(loyaltyPoints=redeem_all)

        assert first.order.discount_used["points"] == 100
        assert Order.all_objects.filter(restaurant=restaurant).count() == 1
        assert LedgerService.get_available_balance(customer) == 100 - 100 + 2

    def test_balance_is_rechecked_inside_the_transaction(self, restaurant, customer, place_order):
        """
        CRITICAL: a redemption whose balance was spent after the read-only check

        Business Impact: the locked re-check rejects it and writes nothing
        """
        self.give_points(customer, 100)
        place_order(loyaltyPoints={"usePoints": True, "pointsToRedeem": 100})

        with patch.object(FulfillmentService, "_check_preconditions"):
            with pytest.raises(InsufficientLoyaltyBalance):
                place_order(loyaltyPoints={"usePoints": True, "pointsToRedeem": 100})

        assert Order.all_objects.filter(restaurant=restaurant).count() == 1
        assert LoyaltyLedgerEntry.all_objects.filter(customer=customer, entry_type=LedgerEntryType.REDEEM).count() == 1
        assert LedgerService.get_available_balance(customer) >= 0


    def test_expired_points_cannot_be_redeemed(self, restaurant, customer, place_order):
        entry = LedgerService.record_earn(customer, 300, expiry_days=30)
        LoyaltyLedgerEntry.all_objects.filter(pk=entry.pk).update(expires_at=timezone.now() - timedelta(days=1))

        with pytest.raises(InsufficientLoyaltyBalance):
            place_order(loyaltyPoints={"usePoints": True, "pointsToRedeem": 100})

    def test_redemption_below_minimum_is_rejected(self, customer, place_order):
        self.give_points(customer, 500)

        with pytest.raises(InvalidOrderPayload):
            place_order(loyaltyPoints={"usePoints": True, "pointsToRedeem": 50})

    def test_redemption_requires_contact(self, customer, place_order):
        with pytest.raises(InvalidOrderPayload):
            place_order(
                orderType="pos-counter",
                customerDetails={},
                loyaltyPoints={"usePoints": True, "pointsToRedeem": 100},
            )

    def test_unknown_customer_has_nothing_to_redeem(self, restaurant, place_order):
        with pytest.raises(InsufficientLoyaltyBalance) as exc_info:
            place_order(
                customerDetails={"phone": "+15559999"},
                loyaltyPoints={"usePoints": True, "pointsToRedeem": 100},
            )

        assert exc_info.value.details["available"] == 0
        assert Customer.all_objects.filter(restaurant=restaurant).count() == 0

    def test_loyalty_disabled_earns_nothing_and_refuses_redemption(self, restaurant, restaurant_settings, customer, fulfillment):
        from settings.config import load_ordering_settings

        restaurant_settings.loyalty_enabled = False
        restaurant_settings.save()
        snapshot = load_ordering_settings(restaurant)
        payload = {
            "orderType": "pickup",
            "items": [{"name": "Pasta", "quantity": 1, "price": "30.00"}],
            "total": "30.00",
            "customerDetails": {"phone": "+15550100"},
        }

        result = fulfillment.place_order(restaurant, payload, ordering_settings=snapshot)
        assert result.points_earned == 0
        assert LoyaltyLedgerEntry.all_objects.count() == 0

        payload["loyaltyPoints"] = {"usePoints": True, "pointsToRedeem": 100}
        with pytest.raises(InvalidOrderPayload):
            fulfillment.place_order(restaurant, payload, ordering_settings=snapshot)


@pytest.mark.django_db
class TestPlacementAtomicity:
    """A failure at any step inside the transaction rolls back every row written before it"""

    @pytest.mark.parametrize("target", [
        "orders.services.fulfillment_service.LedgerService.record_earn",
        "orders.services.fulfillment_service.KitchenWorkQueueService.create_for_order",
        "orders.services.fulfillment_service.CustomerService.record_order",
        "orders.services.fulfillment_service.render_qr_data_url",
    ])
    def test_failure_leaves_no_rows(self, restaurant, ordering_settings, table_5, fulfillment, target):
        with patch(target, side_effect=RuntimeError("boom")):
            with pytest.raises(RuntimeError):
                fulfillment.place_order(restaurant, dine_in_payload(), ordering_settings=ordering_settings)

        assert_nothing_written(restaurant)
        table_5.refresh_from_db()
        assert table_5.status == TableStatus.AVAILABLE
        assert Customer.all_objects.filter(restaurant=restaurant, total_orders__gt=0).count() == 0

    def test_redeem_failure_rolls_back_order(self, restaurant, customer, place_order):
        LedgerService.record_earn(customer, 300, expiry_days=30)

        with patch("orders.services.fulfillment_service.LedgerService.record_redeem", side_effect=RuntimeError("boom")):
            with pytest.raises(RuntimeError):
                place_order(loyaltyPoints={"usePoints": True, "pointsToRedeem": 100})

        assert Order.all_objects.filter(restaurant=restaurant).count() == 0
        assert LedgerService.get_available_balance(customer) == 300

    def test_table_failure_writes_nothing(self, restaurant, ordering_settings, table_5, fulfillment):
        unavailable = TableUnavailable(5, TableUnavailable.BUSY, current_status=TableStatus.OCCUPIED)
        with patch("orders.services.fulfillment_service.TableService.try_occupy", side_effect=unavailable):
            with pytest.raises(TableUnavailable):
                fulfillment.place_order(restaurant, dine_in_payload(), ordering_settings=ordering_settings)

        assert_nothing_written(restaurant)
        assert Customer.all_objects.filter(restaurant=restaurant, total_orders__gt=0).count() == 0

    def test_side_effects_not_sent_when_placement_fails(self, restaurant, ordering_settings, table_5,
                                                         notifier, messaging, fulfillment):
        with patch("orders.services.fulfillment_service.KitchenWorkQueueService.create_for_order",
                   side_effect=RuntimeError("boom")):
            with pytest.raises(RuntimeError):
                fulfillment.place_order(restaurant, dine_in_payload(), ordering_settings=ordering_settings)

        assert notifier.events == []
        messaging.queue_order_confirmation.assert_not_called()


@pytest.mark.django_db
class TestDefaultCollaborators:

    def test_service_builds_channels_notifier_and_gateway(self):
        from kds.notifier import ChannelsNotifier
        from notifications.services import MessagingGateway

        service = FulfillmentService()
        assert isinstance(service.notifier, ChannelsNotifier)
        assert isinstance(service.messaging, MessagingGateway)
