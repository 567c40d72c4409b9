"""Local development settings for the rota marketplace."""

from .base import *  # noqa: F401, F403

DEBUG = True
ALLOWED_HOSTS = ["*"]

# In-process channel layer so websockets work without Redis
CHANNEL_LAYERS = {"default": {"BACKEND": "channels.layers.InMemoryChannelLayer"}}

LOGGING["loggers"]["apps"]["level"] = "DEBUG"  # noqa: F405
