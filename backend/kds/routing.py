from django.urls import re_path
from . import consumers

websocket_urlpatterns = [
    re_path(r'ws/displays/(?P<restaurant_slug>[-\w]+)/$', consumers.DisplayConsumer.as_asgi()),
]
