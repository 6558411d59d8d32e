"""
Centers — Application Configuration
"""

from django.apps import AppConfig


class CentersConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'centers'
    verbose_name = 'Hospital Centres'
