from channels.generic.websocket import AsyncWebsocketConsumer
from channels.db import database_sync_to_async
from django.utils import timezone
import json
import logging

from restaurants.models import Restaurant
from .events.publishers import _to_primitive
from .serializers import KitchenWorkItemSerializer
from .services import KitchenWorkQueueService

logger = logging.getLogger(__name__)


class DisplayConsumer(AsyncWebsocketConsumer):
    """
    WebSocket session for a kitchen or front-of-house display.

    Joins the restaurant's display group and forwards every published event as
    {"type": <event>, "payload": ...}. Events are hints; the display re-fetches
    authoritative state with the "refresh" action or the HTTP API.
    """

    async def connect(self):
        self.group_name = None
        self.restaurant_slug = self.scope['url_route']['kwargs'].get('restaurant_slug')

        self.restaurant = await self.get_restaurant(self.restaurant_slug)
        if self.restaurant is None:
            logger.warning(f"Display connection rejected for unknown or inactive restaurant '{self.restaurant_slug}'")
            await self.close(code=4004)
            return

        self.group_name = self.restaurant.display_group_name
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()
        await self.send_snapshot()

        logger.info(f"Display connected: restaurant={self.restaurant_slug}")

    async def disconnect(self, close_code):
        if self.group_name:
            await self.channel_layer.group_discard(self.group_name, self.channel_name)
        logger.info(f"Display disconnected: restaurant={self.restaurant_slug}, code={close_code}")

    async def receive(self, text_data=None, bytes_data=None):
        try:
            data = json.loads(text_data or "")
        except json.JSONDecodeError:
            await self.send_error("Invalid JSON format")
            return

        action = data.get('action') or data.get('type')
        if action == 'ping':
            await self.send(text_data=json.dumps({
                'type': 'pong',
                'timestamp': timezone.now().isoformat()
            }))
        elif action == 'refresh':
            await self.send_snapshot()
        else:
            await self.send_error(f"Unknown action: {action}")

    async def display_event(self, event):
        """Forward a Notifier event to the socket."""
        await self.send(text_data=json.dumps({
            'type': event['event'],
            'payload': event['payload'],
        }))

    async def send_snapshot(self):
        items = await self.get_active_items()
        await self.send(text_data=json.dumps({
            'type': 'snapshot',
            'payload': items,
        }))

    async def send_error(self, message):
        await self.send(text_data=json.dumps({
            'type': 'error',
            'message': message
        }))

    @database_sync_to_async
    def get_restaurant(self, slug):
        return Restaurant.objects.filter(slug=slug, is_active=True).first()

    @database_sync_to_async
    def get_active_items(self):
        items = KitchenWorkQueueService.active_items(self.restaurant)
        return _to_primitive(KitchenWorkItemSerializer(items, many=True).data)
