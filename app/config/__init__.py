# Loading the Celery app here lets `celery -A config` discover tasks in
# every installed app once Django settings are ready.
from config.celery import app as celery_app

__all__ = ("celery_app",)
