"""
Test settings for the rota marketplace.

Runs against in-memory SQLite so the suite needs no services. SQLite has no
row locks, so the engine's compare-and-set status writes are what detect
stale reads there; the threaded race test only runs on PostgreSQL.
"""

import os

for _name, _value in {
    "SECRET_KEY": "test-only-secret-key",
    "DB_NAME": "rotamarket",
    "DB_USER": "rotamarket",
    "DB_PASSWORD": "",
    "DB_HOST": "localhost",
    "DB_PORT": "5432",
}.items():
    os.environ.setdefault(_name, _value)

from .base import *  # noqa: E402, F401, F403

DEBUG = False

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
        "ATOMIC_REQUESTS": True,
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

CHANNEL_LAYERS = {"default": {"BACKEND": "channels.layers.InMemoryChannelLayer"}}

CELERY_BROKER_URL = "memory://"
CELERY_RESULT_BACKEND = "cache+memory://"
CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True

STORAGES = {
    "default": {"BACKEND": "django.core.files.storage.FileSystemStorage"},
    "staticfiles": {"BACKEND": "django.contrib.staticfiles.storage.StaticFilesStorage"},
}
