"""
Order fulfillment: placement and kitchen progression.

Every write path follows the same shape:

1. validate the request and check preconditions without writing anything
2. perform all row changes inside one transaction.atomic() block
3. after the block exits, publish display events and queue messages

Step 3 never raises. Its failures are logged and returned as warnings on the result.
"""
import logging
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from typing import Optional, Tuple

from django.db import IntegrityError, OperationalError, transaction
from django.utils import timezone

from customers.services import CustomerService
from kds.events.publishers import DisplayEventPublisher
from kds.exceptions import InvalidTransition
from kds.models import KitchenStatus
from kds.notifier import ChannelsNotifier
from kds.services import KitchenWorkQueueService
from loyalty.exceptions import InsufficientLoyaltyBalance
from loyalty.services import LedgerService
from notifications.services import MessagingGateway
from settings.config import OrderingSettings, load_ordering_settings
from tables.exceptions import TableUnavailable
from tables.services import TableService
from ..exceptions import (
    InvalidOrderPayload,
    InvalidOtp,
    LineItemsLocked,
    NotificationDeliveryFailure,
    OrderNotFound,
    PersistenceConflict,
)
from ..line_items import ItemStatus, LineItem
from ..models import Order, OrderStatus, OrderType, PaymentStatus
from ..verification import (
    build_qr_payload,
    generate_otp,
    next_order_number,
    otp_matches,
    parse_qr_payload,
    render_qr_data_url,
)

logger = logging.getLogger(__name__)

# SQLSTATEs for serialization failure, deadlock and lock timeout
RETRYABLE_SQLSTATES = {"40001", "40P01", "55P03"}


@dataclass(frozen=True)
class PlacementRequest:
    order_type: str
    line_items: Tuple[LineItem, ...]
    total: Decimal
    table_number: Optional[int] = None
    customer_name: str = ""
    customer_phone: Optional[str] = None
    customer_email: Optional[str] = None
    redeem_points: int = 0
    payment_method: str = ""
    payment_status: str = PaymentStatus.UNPAID
    pickup_time: Optional[datetime] = None
    special_instructions: str = ""

    @property
    def has_contact(self):
        return bool(self.customer_phone or self.customer_email)

    def validate(self):
        """
        Checks that need no database access. Runs for typed requests and for
        validated payloads alike, before anything is written.
        """
        errors = {}
        if self.order_type not in OrderType.values:
            errors['orderType'] = [f"Unknown order type '{self.order_type}'"]
        if not self.line_items:
            errors['items'] = ["At least one item is required"]
        if self.total is None or self.total <= 0:
            errors['total'] = ["Total must be greater than zero"]
        if self.redeem_points < 0:
            errors['loyaltyPoints'] = ["Points to redeem cannot be negative"]

        if self.order_type == OrderType.DINE_IN and not self.table_number:
            errors['tableNumber'] = ["Table number is required for dine-in orders"]
        elif self.order_type != OrderType.DINE_IN and self.table_number:
            errors['tableNumber'] = ["Only dine-in orders can reference a table"]

        if self.order_type == OrderType.PICKUP and not self.customer_phone:
            errors['customerDetails'] = ["A phone number is required for pickup orders"]

        if errors:
            raise InvalidOrderPayload("Invalid order payload", details={"fields": errors})

    @classmethod
    def from_payload(cls, data) -> "PlacementRequest":
        """Validate a client payload (camelCase keys) into a request."""
        from ..serializers import PlaceOrderSerializer

        serializer = PlaceOrderSerializer(data=data)
        if not serializer.is_valid():
            raise InvalidOrderPayload.from_serializer_errors(serializer.errors)

        validated = serializer.validated_data
        customer = validated.get('customerDetails') or {}
        loyalty = validated.get('loyaltyPoints') or {}
        redeem_points = loyalty.get('pointsToRedeem', 0) if loyalty.get('usePoints') else 0

        return cls(
            order_type=validated['orderType'],
            line_items=tuple(serializer.to_line_items()),
            total=validated['total'],
            table_number=validated.get('tableNumber'),
            customer_name=customer.get('name') or "",
            customer_phone=customer.get('phone') or None,
            customer_email=customer.get('email') or None,
            redeem_points=redeem_points,
            payment_method=validated.get('paymentMethod', ""),
            payment_status=validated.get('paymentStatus', PaymentStatus.UNPAID),
            pickup_time=validated.get('pickupTime'),
            special_instructions=validated.get('specialInstructions', ""),
        )


@dataclass(frozen=True)
class PlacementResult:
    order: Order
    work_item: object
    points_earned: int
    warnings: Tuple[str, ...] = field(default_factory=tuple)

    def to_response(self):
        return {
            "orderId": str(self.order.id),
            "orderNumber": self.order.order_number,
            "otp": self.order.otp,
            "qrCodeUrl": self.order.qr_code,
            "pointsEarned": self.points_earned,
            "status": self.order.status,
            "warnings": list(self.warnings),
        }


@dataclass(frozen=True)
class TransitionResult:
    work_item: object
    order: Order
    warnings: Tuple[str, ...] = field(default_factory=tuple)


def _is_retryable(exc: OperationalError) -> bool:
    cause = exc.__cause__
    sqlstate = getattr(cause, 'sqlstate', None) or getattr(cause, 'pgcode', None)
    if sqlstate in RETRYABLE_SQLSTATES:
        return True
    message = str(exc).lower()
    return any(marker in message for marker in ("deadlock", "could not serialize", "lock timeout", "database is locked"))


@contextmanager
def persistence_conflicts(operation):
    """Surface concurrent-write failures from the database as PersistenceConflict."""
    try:
        yield
    except IntegrityError as exc:
        logger.warning(f"Integrity conflict during {operation}: {exc}")
        raise PersistenceConflict(f"Concurrent write detected during {operation}") from exc
    except OperationalError as exc:
        if not _is_retryable(exc):
            raise
        logger.warning(f"Retryable database error during {operation}: {exc}")
        raise PersistenceConflict(f"Concurrent write detected during {operation}") from exc


class FulfillmentService:
    """
    Orchestrates order placement and kitchen status changes for one restaurant.

    Collaborators are injected so tests can record display events and messages
    instead of sending them.
    """

    ORDER_NUMBER_ATTEMPTS = 5

    # Order status at placement, by channel
    INITIAL_ORDER_STATUS = {
        OrderType.DINE_IN: OrderStatus.PREPARING,
        OrderType.POS_COUNTER: OrderStatus.PREPARING,
        OrderType.PICKUP: OrderStatus.PENDING,
    }

    def __init__(self, notifier=None, messaging=None):
        self.notifier = notifier or ChannelsNotifier()
        self.messaging = messaging or MessagingGateway()

    # ------------------------------------------------------------------
    # Placement
    # ------------------------------------------------------------------

    def place_order(self, restaurant, request, acting_user=None, ordering_settings=None) -> PlacementResult:
        if not isinstance(request, PlacementRequest):
            request = PlacementRequest.from_payload(request)
        request.validate()
        if ordering_settings is None:
            ordering_settings = load_ordering_settings(restaurant)

        self._validate_redemption(request, ordering_settings)
        self._check_preconditions(restaurant, request)

        with persistence_conflicts("order placement"), transaction.atomic():
            order, work_item, points_earned = self._write_order_graph(
                restaurant, request, ordering_settings, acting_user
            )

        logger.info(
            f"Placed {order.order_type} order {order.order_number} for restaurant {restaurant.slug} "
            f"(total {order.total_amount} {order.currency}, {points_earned} points earned)"
        )

        warnings = list(DisplayEventPublisher.new_kitchen_order(self.notifier, work_item))
        warnings += self._queue_message(self.messaging.queue_order_confirmation, order, ordering_settings, "confirmation")

        return PlacementResult(order=order, work_item=work_item, points_earned=points_earned, warnings=tuple(warnings))

    def _validate_redemption(self, request: PlacementRequest, ordering_settings: OrderingSettings):
        if request.redeem_points <= 0:
            return
        if not ordering_settings.loyalty_enabled:
            raise InvalidOrderPayload(
                "Loyalty points cannot be redeemed: loyalty is disabled",
                details={"fields": {"loyaltyPoints": ["Loyalty program is not enabled"]}},
            )
        if request.redeem_points < ordering_settings.min_redeem_points:
            raise InvalidOrderPayload(
                f"At least {ordering_settings.min_redeem_points} points must be redeemed",
                details={"fields": {"loyaltyPoints": [
                    f"Minimum redemption is {ordering_settings.min_redeem_points} points"
                ]}},
            )
        if not request.has_contact:
            raise InvalidOrderPayload(
                "Customer phone or email is required to redeem points",
                details={"fields": {"customerDetails": ["Required when redeeming points"]}},
            )

    def _check_preconditions(self, restaurant, request: PlacementRequest):
        """Read-only checks. The writes below re-verify under the transaction."""
        if request.order_type == OrderType.DINE_IN:
            availability = TableService.check_availability(restaurant, request.table_number)
            if not availability["available"]:
                if not availability["exists"]:
                    reason = TableUnavailable.MISSING
                elif not availability["active"]:
                    reason = TableUnavailable.INACTIVE
                else:
                    reason = TableUnavailable.BUSY
                raise TableUnavailable(request.table_number, reason, current_status=availability["status"])

        if request.redeem_points > 0:
            customer = CustomerService.find_customer(
                restaurant, phone=request.customer_phone, email=request.customer_email
            )
            balance = LedgerService.get_available_balance(customer) if customer else 0
            if request.redeem_points > balance:
                raise InsufficientLoyaltyBalance(request.redeem_points, balance)

    def _write_order_graph(self, restaurant, request, ordering_settings, acting_user):
        customer = None
        if request.has_contact:
            customer = CustomerService.resolve_or_create(
                restaurant,
                name=request.customer_name,
                phone=request.customer_phone,
                email=request.customer_email,
                lock=True,
            )

        discount_used = None
        if request.redeem_points > 0:
            balance = LedgerService.get_available_balance(customer)
            if request.redeem_points > balance:
                raise InsufficientLoyaltyBalance(request.redeem_points, balance)
            discount_used = {
                "points": request.redeem_points,
                "discount": str(LedgerService.redemption_discount(request.redeem_points, ordering_settings)),
            }

        table = None
        if request.order_type == OrderType.DINE_IN:
            table = TableService.try_occupy(restaurant, request.table_number)

        points_earned = LedgerService.earned_points_for(request.total, ordering_settings) if customer else 0

        order = Order(
            restaurant=restaurant,
            table=table,
            customer=customer,
            created_by=acting_user if getattr(acting_user, 'is_authenticated', False) else None,
            order_type=request.order_type,
            line_items=list(request.line_items),
            total_amount=request.total,
            currency=ordering_settings.currency,
            status=self.INITIAL_ORDER_STATUS[request.order_type],
            payment_status=request.payment_status,
            payment_method=request.payment_method,
            otp=generate_otp(),
            discount_used=discount_used,
            points_earned=points_earned,
            customer_name=request.customer_name or (customer.name if customer else ""),
            customer_phone=request.customer_phone or "",
            customer_email=request.customer_email or "",
            pickup_time=request.pickup_time,
            special_instructions=request.special_instructions,
        )
        order.qr_code = render_qr_data_url(build_qr_payload(order))
        self._insert_with_order_number(order, restaurant)

        if discount_used:
            LedgerService.record_redeem(customer, request.redeem_points, order=order)
        if points_earned > 0:
            LedgerService.record_earn(customer, points_earned, ordering_settings.point_expiry_days, order=order)

        work_item = KitchenWorkQueueService.create_for_order(order, assigned_by=order.created_by)

        if customer:
            CustomerService.record_order(customer, request.total)

        return order, work_item, points_earned

    def _insert_with_order_number(self, order, restaurant):
        for _ in range(self.ORDER_NUMBER_ATTEMPTS):
            order.order_number = next_order_number(restaurant)
            try:
                with transaction.atomic():
                    order.save(force_insert=True)
                return
            except IntegrityError:
                # Another placement took this number; try the next one
                logger.info(f"Order number {order.order_number} taken, retrying")
                continue
        raise PersistenceConflict(
            "Failed to generate a unique order number after multiple retries",
            details={"restaurant": restaurant.slug},
        )

    # ------------------------------------------------------------------
    # Kitchen progression
    # ------------------------------------------------------------------

    def advance_kitchen_status(self, restaurant, order_id, new_status, acting_user=None) -> TransitionResult:
        order_id = self._coerce_order_id(order_id)

        with persistence_conflicts("kitchen status change"), transaction.atomic():
            work_item, order = self._transition(restaurant, order_id, new_status, acting_user)

        return self._after_transition(restaurant, work_item, order)

    def cancel_order(self, restaurant, order_id, acting_user=None) -> TransitionResult:
        return self.advance_kitchen_status(restaurant, order_id, KitchenStatus.CANCELLED, acting_user)

    def _transition(self, restaurant, order_id, new_status, acting_user):
        """Status-guarded work item update plus the order mirror. Runs inside the caller's transaction."""
        work_item = KitchenWorkQueueService.get_for_order(restaurant, order_id)
        if work_item is None:
            raise OrderNotFound(order_id)

        staff = acting_user if getattr(acting_user, 'is_authenticated', False) else None
        KitchenWorkQueueService.transition(work_item, new_status, acting_user=staff)

        order = Order.all_objects.select_related('table').get(pk=order_id)
        self._mirror_status(order, new_status)
        work_item.order = order

        if new_status in (KitchenStatus.COMPLETED, KitchenStatus.CANCELLED) and order.order_type == OrderType.DINE_IN:
            TableService.release(order.table)

        return work_item, order

    def _mirror_status(self, order, kitchen_status):
        now = timezone.now()
        changes = {'status': kitchen_status, 'updated_at': now}
        if kitchen_status == KitchenStatus.COMPLETED:
            changes['completed_at'] = now
        elif kitchen_status == KitchenStatus.CANCELLED:
            changes['cancelled_at'] = now

        Order.all_objects.filter(pk=order.pk).update(**changes)
        for field_name, value in changes.items():
            setattr(order, field_name, value)

    def _after_transition(self, restaurant, work_item, order) -> TransitionResult:
        logger.info(f"Order {order.order_number} is now {order.status}")
        warnings = list(DisplayEventPublisher.kitchen_order_update(self.notifier, work_item))

        if order.status == OrderStatus.COMPLETED and order.customer_email:
            ordering_settings = load_ordering_settings(restaurant)
            warnings += self._queue_message(
                self.messaging.queue_feedback_request, order, ordering_settings, "feedback request"
            )

        return TransitionResult(work_item=work_item, order=order, warnings=tuple(warnings))

    def reset_kitchen_item(self, restaurant, order_id) -> TransitionResult:
        """
        Administrative reset of a preparing or ready item back to pending. The order
        returns to the status it had at placement.
        """
        order_id = self._coerce_order_id(order_id)

        with persistence_conflicts("kitchen reset"), transaction.atomic():
            work_item = KitchenWorkQueueService.get_for_order(restaurant, order_id)
            if work_item is None:
                raise OrderNotFound(order_id)
            KitchenWorkQueueService.reset(work_item)

            order = Order.all_objects.select_related('table').get(pk=order_id)
            self._mirror_status(order, self.INITIAL_ORDER_STATUS[order.order_type])
            work_item.order = order

        return self._after_transition(restaurant, work_item, order)

    # ------------------------------------------------------------------
    # Pickup verification
    # ------------------------------------------------------------------

    def verify_pickup_otp(self, restaurant, order_id=None, otp=None, qr_payload=None, acting_user=None) -> TransitionResult:
        """
        Complete a ready pickup order against its one-time code.

        The code may be typed in or come from the scanned QR payload. A code can only
        be consumed once; the second attempt fails with InvalidOtp.
        """
        if qr_payload is not None:
            try:
                data = parse_qr_payload(qr_payload)
            except ValueError as exc:
                raise InvalidOtp(str(exc))
            if order_id is not None and str(order_id) != str(data["orderId"]):
                raise InvalidOtp("QR code belongs to a different order")
            order_id = data["orderId"]
            otp = data["otp"]

        order_id = self._coerce_order_id(order_id)
        order = Order.all_objects.filter(restaurant=restaurant, pk=order_id).first()
        if order is None:
            raise OrderNotFound(order_id)
        if order.order_type != OrderType.PICKUP:
            raise InvalidOtp("Only pickup orders are verified with a code", details={"orderType": order.order_type})
        if not otp_matches(order.otp, otp):
            logger.warning(f"Invalid OTP submitted for order {order.order_number}")
            raise InvalidOtp("Code does not match or has already been used")

        with persistence_conflicts("pickup verification"), transaction.atomic():
            consumed = Order.all_objects.filter(pk=order.pk, otp=order.otp).update(
                otp=None, updated_at=timezone.now()
            )
            if consumed != 1:
                raise InvalidOtp("Code does not match or has already been used")
            work_item, order = self._transition(restaurant, order_id, KitchenStatus.COMPLETED, acting_user)

        logger.info(f"Pickup verified for order {order.order_number}")
        return self._after_transition(restaurant, work_item, order)

    # ------------------------------------------------------------------
    # Kitchen assignment and line item edits
    # ------------------------------------------------------------------

    def assign_kitchen_staff(self, restaurant, order_id, staff, acting_user=None) -> TransitionResult:
        order_id = self._coerce_order_id(order_id)

        with persistence_conflicts("kitchen assignment"), transaction.atomic():
            work_item = KitchenWorkQueueService.get_for_order(restaurant, order_id)
            if work_item is None:
                raise OrderNotFound(order_id)
            assigned_by = acting_user if getattr(acting_user, 'is_authenticated', False) else None
            KitchenWorkQueueService.assign_staff(work_item, staff, assigned_by=assigned_by)

        order = work_item.order
        warnings = DisplayEventPublisher.kitchen_order_update(self.notifier, work_item)
        return TransitionResult(work_item=work_item, order=order, warnings=tuple(warnings))

    def update_line_items(self, restaurant, order_id, line_items, total) -> Order:
        """
        Replace an order's items and total. Allowed only until the kitchen accepts the
        order. Loyalty entries already written are left untouched.
        """
        order_id = self._coerce_order_id(order_id)

        with persistence_conflicts("line item update"), transaction.atomic():
            work_item = KitchenWorkQueueService.get_for_order(restaurant, order_id, for_update=True)
            if work_item is None:
                raise OrderNotFound(order_id)
            if work_item.status != KitchenStatus.PENDING:
                raise LineItemsLocked(
                    f"Items can no longer change: kitchen order is {work_item.status}",
                    details={"currentStatus": work_item.status},
                )

            order = Order.all_objects.select_for_update().get(pk=order_id)
            order.line_items = list(line_items)
            order.total_amount = total
            order.save(update_fields=['line_items', 'total_amount', 'updated_at'])

        logger.info(f"Line items updated for order {order.order_number}")
        warnings = DisplayEventPublisher.orders_update(self.notifier, restaurant.id, [order.id])
        for warning in warnings:
            logger.warning(warning)
        return order

    def mark_item(self, restaurant, order_id, item_index, item_status) -> TransitionResult:
        """
        Mark one line item pending or fulfilled while the kitchen works the order.
        Finished (completed or cancelled) work items are refused.
        """
        if item_status not in ItemStatus.values:
            raise InvalidOrderPayload(
                f"Unknown item status '{item_status}'",
                details={"fields": {"status": [f"Must be one of: {', '.join(ItemStatus.values)}"]}},
            )
        order_id = self._coerce_order_id(order_id)

        with persistence_conflicts("item status update"), transaction.atomic():
            work_item = KitchenWorkQueueService.get_for_order(restaurant, order_id, for_update=True)
            if work_item is None:
                raise OrderNotFound(order_id)
            if work_item.is_terminal:
                raise InvalidTransition(
                    work_item.status,
                    work_item.status,
                    f"Items of a {work_item.status} kitchen order cannot change",
                )

            order = Order.all_objects.select_for_update().get(pk=order_id)
            line_items = list(order.line_items)
            if not 0 <= item_index < len(line_items):
                raise InvalidOrderPayload(
                    f"Order {order.order_number} has no item {item_index}",
                    details={"fields": {"itemIndex": [f"Must be between 0 and {len(line_items) - 1}"]}},
                )

            previous_status = line_items[item_index].status
            line_items[item_index] = replace(line_items[item_index], status=item_status)
            order.line_items = line_items
            order.save(update_fields=['line_items', 'updated_at'])
            work_item.order = order

        logger.info(f"Item {item_index} of order {order.order_number} is now {item_status}")
        warnings = DisplayEventPublisher.item_status_update(
            self.notifier, restaurant.id, order, item_index, previous_status
        )
        return TransitionResult(work_item=work_item, order=order, warnings=tuple(warnings))

    # ------------------------------------------------------------------
    # Payment
    # ------------------------------------------------------------------

    def update_payment_status(self, restaurant, order_id, payment_status) -> Order:
        """Record payment for a pickup order after placement, e.g. cash collected at the counter."""
        if payment_status not in PaymentStatus.values:
            raise InvalidOrderPayload(
                f"Unknown payment status '{payment_status}'",
                details={"fields": {"status": [f"Must be one of: {', '.join(PaymentStatus.values)}"]}},
            )
        order_id = self._coerce_order_id(order_id)

        with persistence_conflicts("payment update"), transaction.atomic():
            order = Order.all_objects.select_for_update().filter(
                restaurant=restaurant, pk=order_id, order_type=OrderType.PICKUP
            ).first()
            if order is None:
                raise OrderNotFound(order_id)
            previous_status = order.payment_status
            order.payment_status = payment_status
            order.save(update_fields=['payment_status', 'updated_at'])

        logger.info(f"Payment for order {order.order_number} changed {previous_status} -> {payment_status}")
        warnings = DisplayEventPublisher.orders_update(self.notifier, restaurant.id, [order.id])
        for warning in warnings:
            logger.warning(warning)
        return order

    # ------------------------------------------------------------------

    @staticmethod
    def _coerce_order_id(order_id):
        try:
            return uuid.UUID(str(order_id))
        except (TypeError, ValueError):
            raise OrderNotFound(order_id)

    def _queue_message(self, queue, order, ordering_settings, label):
        try:
            queue(order, ordering_settings)
            return []
        except Exception as e:
            failure = NotificationDeliveryFailure(f"Customer {label} could not be queued")
            logger.error(f"Failed to queue {label} for order {order.order_number}: {e}", exc_info=True)
            return [failure.message]
