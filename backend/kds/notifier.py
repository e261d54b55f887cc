"""
Display fan-out.

The fulfillment service depends only on the Notifier interface. ChannelsNotifier
pushes events to every display session of a restaurant through the channel layer;
RecordingNotifier keeps them in memory for tests.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Tuple
import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer

from restaurants.models import display_group_name

logger = logging.getLogger(__name__)


class DisplayEvent:
    NEW_KITCHEN_ORDER = "newKitchenOrder"
    ORDERS_UPDATE = "ordersUpdate"
    KITCHEN_ORDER_UPDATE = "kitchenOrderUpdate"
    ITEM_STATUS_UPDATE = "itemStatusUpdate"


class Notifier(ABC):
    """Best-effort, at-most-once event delivery to displays."""

    @abstractmethod
    def publish(self, restaurant_id, event_type: str, payload: Dict[str, Any]) -> None:
        """Deliver one event. Implementations raise on failure; callers decide what to do."""


class ChannelsNotifier(Notifier):

    def __init__(self, channel_layer=None):
        self._channel_layer = channel_layer

    @property
    def channel_layer(self):
        if self._channel_layer is None:
            self._channel_layer = get_channel_layer()
        return self._channel_layer

    def publish(self, restaurant_id, event_type, payload):
        if self.channel_layer is None:
            raise RuntimeError("No channel layer configured")

        group_name = display_group_name(restaurant_id)
        logger.debug(f"Sending {event_type} to {group_name}")
        async_to_sync(self.channel_layer.group_send)(
            group_name,
            {
                'type': 'display.event',
                'event': event_type,
                'payload': payload,
            }
        )


class RecordingNotifier(Notifier):
    """Keeps published events in memory instead of sending them."""

    def __init__(self, fail_with=None):
        self.events: List[Tuple[Any, str, Dict[str, Any]]] = []
        self.fail_with = fail_with

    def publish(self, restaurant_id, event_type, payload):
        if self.fail_with is not None:
            raise self.fail_with
        self.events.append((restaurant_id, event_type, payload))

    def of_type(self, event_type):
        return [payload for _, recorded_type, payload in self.events if recorded_type == event_type]

    @property
    def event_types(self):
        return [event_type for _, event_type, _ in self.events]
