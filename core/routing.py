"""WebSocket URL routing for the rota marketplace's Channels consumers."""

from django.urls import re_path

from core.consumers import MarketplaceConsumer, UserConsumer

websocket_urlpatterns = [
    # Personal notification stream for each user
    re_path(r"ws/user/$", UserConsumer.as_asgi()),
    # Live marketplace board for a role
    re_path(r"ws/marketplace/(?P<role_id>\d+)/$", MarketplaceConsumer.as_asgi()),
]
