"""
HospiTrack-HMS — Celery Application

Worker and beat share the Django settings; periodic schedules are stored
in the database through django-celery-beat.

@file config/celery.py
"""

import os

from celery import Celery

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings.development')

app = Celery('hospitrack')
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()
