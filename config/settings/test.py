"""
HospiTrack-HMS — Test Settings

Used by pytest-django. SQLite unless DATABASE_URL points elsewhere;
no Redis or broker required.

@file config/settings/test.py
"""

from .base import *  # noqa: F401, F403
from .base import env

DEBUG = False

DATABASES = {
    'default': env.db('DATABASE_URL', default='sqlite:///:memory:'),
}

CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
    }
}

PASSWORD_HASHERS = [
    'django.contrib.auth.hashers.MD5PasswordHasher',
]

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True

REST_FRAMEWORK['DEFAULT_THROTTLE_CLASSES'] = []  # noqa: F405

LOGGING['loggers']['hospitrack']['level'] = 'WARNING'  # noqa: F405
