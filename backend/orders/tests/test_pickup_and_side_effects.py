"""
Pickup verification with the one-time code, pickup payment updates, and the
display/messaging side effects that run after each committed change.
"""
import json
from unittest.mock import patch

import pytest
from django.db import IntegrityError, OperationalError

from kds.models import KitchenStatus
from kds.notifier import DisplayEvent, RecordingNotifier
from orders.exceptions import InvalidOrderPayload, InvalidOtp, OrderNotFound, PersistenceConflict
from orders.models import Order, OrderStatus, PaymentStatus
from orders.services import FulfillmentService, persistence_conflicts
from orders.verification import build_qr_payload, generate_otp, otp_matches


@pytest.fixture
def ready_pickup(restaurant, place_order, fulfillment):
    order = place_order().order
    fulfillment.advance_kitchen_status(restaurant, order.id, KitchenStatus.PREPARING)
    fulfillment.advance_kitchen_status(restaurant, order.id, KitchenStatus.READY)
    return Order.all_objects.get(pk=order.pk)


@pytest.mark.django_db
class TestPickupVerification:

    def test_correct_code_completes_order(self, restaurant, ready_pickup, fulfillment):
        result = fulfillment.verify_pickup_otp(restaurant, order_id=ready_pickup.id, otp=ready_pickup.otp)

        stored = Order.all_objects.get(pk=ready_pickup.pk)
        assert stored.status == OrderStatus.COMPLETED
        assert stored.otp is None
        assert result.work_item.status == KitchenStatus.COMPLETED

    def test_code_is_single_use(self, restaurant, ready_pickup, fulfillment):
        """
        CRITICAL: a pickup code cannot be used twice

        Security Impact: a photographed code must not release a second order
        """
        fulfillment.verify_pickup_otp(restaurant, order_id=ready_pickup.id, otp=ready_pickup.otp)

        with pytest.raises(InvalidOtp):
            fulfillment.verify_pickup_otp(restaurant, order_id=ready_pickup.id, otp=ready_pickup.otp)

    def test_wrong_code_changes_nothing(self, restaurant, ready_pickup, fulfillment):
        wrong = "000000" if ready_pickup.otp != "000000" else "111111"

        with pytest.raises(InvalidOtp):
            fulfillment.verify_pickup_otp(restaurant, order_id=ready_pickup.id, otp=wrong)

        stored = Order.all_objects.get(pk=ready_pickup.pk)
        assert stored.otp == ready_pickup.otp
        assert stored.status == OrderStatus.READY

    def test_scanned_qr_payload(self, restaurant, ready_pickup, fulfillment):
        result = fulfillment.verify_pickup_otp(restaurant, qr_payload=build_qr_payload(ready_pickup))

        assert result.order.status == OrderStatus.COMPLETED

    def test_qr_for_another_order_is_rejected(self, restaurant, ready_pickup, place_order, fulfillment):
        other = place_order().order

        with pytest.raises(InvalidOtp):
            fulfillment.verify_pickup_otp(restaurant, order_id=other.id, qr_payload=build_qr_payload(ready_pickup))

    @pytest.mark.parametrize("payload", ["not json", json.dumps({"orderId": "x"}), json.dumps([1, 2])])
    def test_malformed_qr_payload(self, restaurant, payload, fulfillment):
        with pytest.raises(InvalidOtp):
            fulfillment.verify_pickup_otp(restaurant, qr_payload=payload)

    def test_order_must_be_ready(self, restaurant, place_order, fulfillment):
        from kds.exceptions import InvalidTransition

        order = place_order().order

        with pytest.raises(InvalidTransition):
            fulfillment.verify_pickup_otp(restaurant, order_id=order.id, otp=order.otp)

        # The code is still usable once the order is actually ready
        assert Order.all_objects.get(pk=order.pk).otp == order.otp

    def test_only_pickup_orders_use_codes(self, restaurant, place_order, fulfillment):
        order = place_order(orderType="pos-counter", customerDetails={}).order

        with pytest.raises(InvalidOtp):
            fulfillment.verify_pickup_otp(restaurant, order_id=order.id, otp=order.otp)


class TestCodeHelpers:

    def test_generated_codes_are_numeric(self):
        code = generate_otp(8)
        assert len(code) == 8 and code.isdigit()

    def test_matching(self):
        assert otp_matches("123456", " 123456 ")
        assert not otp_matches("123456", "654321")
        assert not otp_matches(None, "123456")
        assert not otp_matches("123456", "")


@pytest.mark.django_db
class TestDisplayEvents:

    def test_placement_publishes_new_order_then_orders_update(self, restaurant, place_order, notifier):
        result = place_order()

        assert notifier.event_types == [DisplayEvent.NEW_KITCHEN_ORDER, DisplayEvent.ORDERS_UPDATE]
        restaurant_id, _, payload = notifier.events[0]
        assert restaurant_id == restaurant.id
        assert payload["status"] == KitchenStatus.PENDING
        assert payload["order"]["order_number"] == result.order.order_number
        assert "otp" not in payload["order"]
        assert notifier.of_type(DisplayEvent.ORDERS_UPDATE) == [
            {"type": "update", "orderIds": [str(result.order.id)]}
        ]

    def test_status_change_publishes_kitchen_update(self, restaurant, place_order, notifier, fulfillment):
        order = place_order().order
        notifier.events.clear()

        fulfillment.advance_kitchen_status(restaurant, order.id, KitchenStatus.PREPARING)

        assert notifier.event_types == [DisplayEvent.KITCHEN_ORDER_UPDATE, DisplayEvent.ORDERS_UPDATE]
        assert notifier.of_type(DisplayEvent.KITCHEN_ORDER_UPDATE)[0]["status"] == KitchenStatus.PREPARING

    def test_rejected_transition_publishes_nothing(self, restaurant, place_order, notifier, fulfillment):
        from kds.exceptions import InvalidTransition

        order = place_order().order
        notifier.events.clear()

        with pytest.raises(InvalidTransition):
            fulfillment.advance_kitchen_status(restaurant, order.id, KitchenStatus.READY)

        assert notifier.events == []

    def test_notifier_failure_becomes_warning(self, restaurant, ordering_settings, messaging):
        """
        HIGH: a broken display channel must not fail the order

        Business Impact: the order is committed and the caller is told about the failed push
        """
        service = FulfillmentService(notifier=RecordingNotifier(fail_with=ConnectionError("redis down")),
                                     messaging=messaging)

        result = service.place_order(
            restaurant,
            {"orderType": "pos-counter", "items": [{"name": "Tea", "quantity": 1, "price": "2.00"}], "total": "2.00"},
            ordering_settings=ordering_settings,
        )

        assert Order.all_objects.filter(pk=result.order.pk).exists()
        assert len(result.warnings) == 2
        assert all("could not be delivered" in warning for warning in result.warnings)

    def test_notifier_failure_on_transition_becomes_warning(self, restaurant, place_order, notifier, fulfillment):
        order = place_order().order
        notifier.fail_with = ConnectionError("redis down")

        result = fulfillment.advance_kitchen_status(restaurant, order.id, KitchenStatus.PREPARING)

        assert result.work_item.status == KitchenStatus.PREPARING
        assert len(result.warnings) == 2


@pytest.mark.django_db
class TestMessaging:

    def test_confirmation_queued_after_placement(self, place_order, messaging, ordering_settings):
        result = place_order()

        messaging.queue_order_confirmation.assert_called_once_with(result.order, ordering_settings)

    def test_messaging_failure_becomes_warning(self, restaurant, place_order, messaging):
        messaging.queue_order_confirmation.side_effect = ConnectionError("broker down")

        result = place_order()

        assert Order.all_objects.filter(pk=result.order.pk).exists()
        assert result.warnings == ("Customer confirmation could not be queued",)

    def test_feedback_request_on_completion(self, restaurant, ready_pickup, fulfillment, messaging):
        fulfillment.verify_pickup_otp(restaurant, order_id=ready_pickup.id, otp=ready_pickup.otp)

        messaging.queue_feedback_request.assert_called_once()
        queued_order = messaging.queue_feedback_request.call_args[0][0]
        assert queued_order.pk == ready_pickup.pk

    def test_no_feedback_request_on_cancellation(self, restaurant, place_order, fulfillment, messaging):
        order = place_order().order

        fulfillment.cancel_order(restaurant, order.id)

        messaging.queue_feedback_request.assert_not_called()


class TestPersistenceConflicts:

    def test_integrity_error_is_a_conflict(self):
        with pytest.raises(PersistenceConflict) as exc_info:
            with persistence_conflicts("test write"):
                raise IntegrityError("duplicate key")

        assert exc_info.value.details["retryable"] is True

    def test_deadlock_is_a_conflict(self):
        with pytest.raises(PersistenceConflict):
            with persistence_conflicts("test write"):
                raise OperationalError("deadlock detected")

    def test_other_operational_errors_propagate(self):
        with pytest.raises(OperationalError):
            with persistence_conflicts("test write"):
                raise OperationalError("no such table: orders_order")

    def test_integrity_error_during_placement(self, restaurant, ordering_settings, fulfillment, db):
        with patch(
            "orders.services.fulfillment_service.KitchenWorkQueueService.create_for_order",
            side_effect=IntegrityError("duplicate work item"),
        ):
            with pytest.raises(PersistenceConflict):
                fulfillment.place_order(
                    restaurant,
                    {"orderType": "pos-counter", "items": [{"name": "Tea", "quantity": 1, "price": "2.00"}],
                     "total": "2.00"},
                    ordering_settings=ordering_settings,
                )

        assert Order.all_objects.filter(restaurant=restaurant).count() == 0


@pytest.mark.django_db
class TestPaymentStatus:

    def test_cash_collected_for_pickup_order(self, restaurant, place_order, fulfillment, notifier):
        order = place_order().order
        notifier.events.clear()

        updated = fulfillment.update_payment_status(restaurant, order.id, PaymentStatus.CASH_IN_HAND)

        assert updated.payment_status == PaymentStatus.CASH_IN_HAND
        assert Order.all_objects.get(pk=order.pk).payment_status == PaymentStatus.CASH_IN_HAND
        assert notifier.events == [
            (restaurant.id, DisplayEvent.ORDERS_UPDATE, {"type": "update", "orderIds": [str(order.id)]})
        ]

    def test_payment_change_leaves_kitchen_alone(self, restaurant, place_order, fulfillment):
        order = place_order().order

        fulfillment.update_payment_status(restaurant, order.id, PaymentStatus.PAID)

        stored = Order.all_objects.get(pk=order.pk)
        assert stored.status == OrderStatus.PENDING
        assert stored.otp == order.otp

    def test_unknown_payment_status(self, restaurant, place_order, fulfillment):
        order = place_order().order

        with pytest.raises(InvalidOrderPayload):
            fulfillment.update_payment_status(restaurant, order.id, "refunded")

        assert Order.all_objects.get(pk=order.pk).payment_status == PaymentStatus.UNPAID

    def test_only_pickup_orders(self, restaurant, place_order, fulfillment):
        order = place_order(orderType="pos-counter", customerDetails={}).order

        with pytest.raises(OrderNotFound):
            fulfillment.update_payment_status(restaurant, order.id, PaymentStatus.PAID)

    def test_other_restaurant_or_unknown_order(self, restaurant, other_restaurant, place_order, fulfillment):
        order = place_order().order

        with pytest.raises(OrderNotFound):
            fulfillment.update_payment_status(other_restaurant, order.id, PaymentStatus.PAID)
        with pytest.raises(OrderNotFound):
            fulfillment.update_payment_status(restaurant, "not-a-uuid", PaymentStatus.PAID)

        assert Order.all_objects.get(pk=order.pk).payment_status == PaymentStatus.UNPAID
