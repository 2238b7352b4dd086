"""
Celery configuration for the Django application.

Background work in this project:
- Bulk teardown of a user's connected accounts (out of band of the request)
- Periodic refresh of cached bar connect statuses from Stripe

Tasks are auto-discovered from all installed Django apps.

Usage:
    from payments.tasks import teardown_user_connect_accounts

    teardown_user_connect_accounts.delay(user_id)
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

app.autodiscover_tasks()
