from typing import List
import json
import logging

from django.core.serializers.json import DjangoJSONEncoder

from orders.exceptions import NotificationDeliveryFailure
from ..notifier import DisplayEvent

logger = logging.getLogger(__name__)


def _to_primitive(data):
    """Plain JSON types only, so any channel layer backend can carry the payload."""
    return json.loads(json.dumps(data, cls=DjangoJSONEncoder))


class DisplayEventPublisher:
    """
    Builds display events and hands them to a Notifier.

    Every method is called after the database transaction has committed. Delivery
    failures are logged and returned as warning strings; nothing is raised.
    """

    @staticmethod
    def _publish(notifier, restaurant_id, event_type, build_payload) -> List[str]:
        try:
            notifier.publish(restaurant_id, event_type, build_payload())
            return []
        except Exception as e:
            failure = NotificationDeliveryFailure(f"Display notification '{event_type}' could not be delivered")
            logger.error(f"Error publishing {event_type} to restaurant {restaurant_id}: {e}", exc_info=True)
            return [failure.message]

    @staticmethod
    def serialize_work_item(work_item):
        from ..serializers import KitchenWorkItemSerializer

        return _to_primitive(KitchenWorkItemSerializer(work_item).data)

    @staticmethod
    def new_kitchen_order(notifier, work_item) -> List[str]:
        logger.info(f"Publishing {DisplayEvent.NEW_KITCHEN_ORDER} for order {work_item.order.order_number}")
        warnings = DisplayEventPublisher._publish(
            notifier,
            work_item.restaurant_id,
            DisplayEvent.NEW_KITCHEN_ORDER,
            lambda: DisplayEventPublisher.serialize_work_item(work_item),
        )
        return warnings + DisplayEventPublisher.orders_update(notifier, work_item.restaurant_id, [work_item.order_id])

    @staticmethod
    def kitchen_order_update(notifier, work_item) -> List[str]:
        logger.info(
            f"Publishing {DisplayEvent.KITCHEN_ORDER_UPDATE} for order {work_item.order.order_number}: {work_item.status}"
        )
        warnings = DisplayEventPublisher._publish(
            notifier,
            work_item.restaurant_id,
            DisplayEvent.KITCHEN_ORDER_UPDATE,
            lambda: DisplayEventPublisher.serialize_work_item(work_item),
        )
        return warnings + DisplayEventPublisher.orders_update(notifier, work_item.restaurant_id, [work_item.order_id])

    @staticmethod
    def orders_update(notifier, restaurant_id, order_ids) -> List[str]:
        return DisplayEventPublisher._publish(
            notifier,
            restaurant_id,
            DisplayEvent.ORDERS_UPDATE,
            lambda: {"type": "update", "orderIds": [str(order_id) for order_id in order_ids]},
        )

    @staticmethod
    def item_status_update(notifier, restaurant_id, order, item_index, previous_status) -> List[str]:
        item = order.line_items[item_index]
        logger.info(
            f"Publishing {DisplayEvent.ITEM_STATUS_UPDATE} for order {order.order_number} "
            f"item {item_index}: {previous_status} -> {item.status}"
        )
        warnings = DisplayEventPublisher._publish(
            notifier,
            restaurant_id,
            DisplayEvent.ITEM_STATUS_UPDATE,
            lambda: {
                "orderId": str(order.id),
                "itemIndex": item_index,
                "name": item.name,
                "status": item.status,
                "previousStatus": previous_status,
            },
        )
        return warnings + DisplayEventPublisher.orders_update(notifier, restaurant_id, [order.id])
