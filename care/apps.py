"""
Care — Application Configuration
"""

from django.apps import AppConfig


class CareConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'care'
    verbose_name = 'Care Episodes'
