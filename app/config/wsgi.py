"""
WSGI config for the Django application.

Exposes the WSGI callable as a module-level variable named `application`
for traditional WSGI servers (gunicorn, uWSGI).
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

application = get_wsgi_application()
