"""
Users — Models

Custom User model for hospital staff: UUID PK, email-based
authentication and a single role driving API permissions.

@file users/models.py
"""

from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from core.models import BaseModel
from users.managers import UserManager


class User(AbstractBaseUser, PermissionsMixin, BaseModel):
    """
    Staff account. SUPER_ADMIN manages centres and financiers,
    MEDICAL_STAFF runs the clinical workflows, CASHIER records payments
    and cash handovers.
    """

    class RoleChoices(models.TextChoices):
        SUPER_ADMIN = 'SUPER_ADMIN', _('Super administrateur')
        MEDICAL_STAFF = 'MEDICAL_STAFF', _('Personnel soignant')
        CASHIER = 'CASHIER', _('Caissier')

    email = models.EmailField(_('email'), unique=True)
    first_name = models.CharField(_('first name'), max_length=100, blank=True)
    last_name = models.CharField(_('last name'), max_length=100, blank=True)
    phone = models.CharField(_('phone'), max_length=20, blank=True)

    role = models.CharField(
        _('role'), max_length=16,
        choices=RoleChoices.choices, default=RoleChoices.MEDICAL_STAFF,
        db_index=True,
    )

    is_staff = models.BooleanField(_('staff status'), default=False)
    is_active = models.BooleanField(_('active'), default=True)
    date_joined = models.DateTimeField(_('date joined'), default=timezone.now)

    objects = UserManager()

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = []

    class Meta:
        verbose_name = _('user')
        verbose_name_plural = _('users')
        ordering = ['last_name', 'first_name']

    def __str__(self):
        return self.get_full_name()

    def get_full_name(self):
        full = f'{self.first_name} {self.last_name}'.strip()
        return full or self.email

    def get_short_name(self):
        return self.first_name or self.email

    def has_role(self, *roles: str) -> bool:
        if self.is_superuser:
            return True
        return self.role in roles
