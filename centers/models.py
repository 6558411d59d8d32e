"""
Centers — Models

A hospital centre owns its inventory rows, its cash drawer and the
financiers it hands cash to. Centres are deactivated, never deleted.

@file centers/models.py
"""

from django.db import models
from django.db.models.functions import Lower
from django.utils.translation import gettext_lazy as _

from core.models import ActivatableModel


class HospitalCenter(ActivatableModel):
    name = models.CharField(_('name'), max_length=200)
    address = models.CharField(_('address'), max_length=500, blank=True)
    phone_number = models.CharField(_('phone number'), max_length=20, blank=True)
    email = models.EmailField(_('email'), blank=True)

    class Meta:
        verbose_name = _('hospital centre')
        verbose_name_plural = _('hospital centres')
        ordering = ['name']
        constraints = [
            models.UniqueConstraint(Lower('name'), name='unique_center_name_ci'),
        ]

    def __str__(self):
        return self.name
