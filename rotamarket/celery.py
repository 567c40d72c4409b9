"""
Celery application configuration for the rota marketplace.

Tasks are auto-discovered from each Django app's tasks.py module.
Two queues are defined:
  - default: general background work
  - notifications: real-time pushes of marketplace notifications
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "rotamarket.settings.local")

app = Celery("rotamarket")

# Read configuration from Django settings, namespaced under CELERY_
app.config_from_object("django.conf:settings", namespace="CELERY")

# Auto-discover tasks in all installed apps
app.autodiscover_tasks()
