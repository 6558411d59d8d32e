"""
Patients — Models

Patient identity and the diagnoses care episodes, prescriptions and
examinations hang off.

@file patients/models.py
"""

from django.conf import settings
from django.db import models
from django.utils.translation import gettext_lazy as _

from core.models import ActivatableModel, BaseModel


class Patient(ActivatableModel):

    class GenderChoices(models.TextChoices):
        MALE = 'M', _('Masculin')
        FEMALE = 'F', _('Féminin')

    first_name = models.CharField(_('first name'), max_length=100)
    last_name = models.CharField(_('last name'), max_length=100)
    date_of_birth = models.DateField(_('date of birth'), null=True, blank=True)
    gender = models.CharField(_('gender'), max_length=1, choices=GenderChoices.choices)
    phone_number = models.CharField(_('phone number'), max_length=20, blank=True)
    email = models.EmailField(_('email'), blank=True)
    address = models.CharField(_('address'), max_length=500, blank=True)
    emergency_contact_name = models.CharField(_('emergency contact'), max_length=200, blank=True)
    emergency_contact_phone = models.CharField(_('emergency contact phone'), max_length=20, blank=True)
    blood_type = models.CharField(_('blood type'), max_length=5, blank=True)
    allergies = models.TextField(_('allergies'), blank=True)

    class Meta:
        verbose_name = _('patient')
        verbose_name_plural = _('patients')
        ordering = ['last_name', 'first_name']

    def __str__(self):
        return self.full_name

    @property
    def full_name(self) -> str:
        return f'{self.first_name} {self.last_name}'.strip()


class Diagnosis(BaseModel):
    patient = models.ForeignKey(
        Patient,
        on_delete=models.PROTECT,
        related_name='diagnoses',
        verbose_name=_('patient'),
    )
    hospital_center = models.ForeignKey(
        'centers.HospitalCenter',
        on_delete=models.PROTECT,
        related_name='diagnoses',
        verbose_name=_('hospital centre'),
    )
    diagnosed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='diagnoses',
        verbose_name=_('diagnosed by'),
    )
    code = models.CharField(_('code'), max_length=20, blank=True)
    name = models.CharField(_('name'), max_length=200)
    description = models.TextField(_('description'), blank=True)
    severity = models.CharField(_('severity'), max_length=20, blank=True)
    diagnosis_date = models.DateTimeField(_('diagnosis date'))
    is_active = models.BooleanField(_('active'), default=True)

    class Meta:
        verbose_name = _('diagnosis')
        verbose_name_plural = _('diagnoses')
        ordering = ['-diagnosis_date']

    def __str__(self):
        return f'{self.name} ({self.patient})'
