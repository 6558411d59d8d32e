"""
Examinations — Application Configuration
"""

from django.apps import AppConfig


class ExaminationsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'examinations'
    verbose_name = 'Examinations'
