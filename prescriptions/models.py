"""
Prescriptions — Models

A prescription lists products for a patient. Dispensing it takes every
line from the centre's stock at once and closes it for edits.

Status: PENDING → DISPENSED

@file prescriptions/models.py
"""

from django.conf import settings
from django.db import models
from django.utils.translation import gettext_lazy as _

from core.models import BaseModel


class Prescription(BaseModel):

    class StatusChoices(models.TextChoices):
        PENDING = 'PENDING', _('En attente')
        DISPENSED = 'DISPENSED', _('Dispensée')

    patient = models.ForeignKey(
        'patients.Patient',
        on_delete=models.PROTECT,
        related_name='prescriptions',
        verbose_name=_('patient'),
    )
    diagnosis = models.ForeignKey(
        'patients.Diagnosis',
        null=True, blank=True,
        on_delete=models.PROTECT,
        related_name='prescriptions',
        verbose_name=_('diagnosis'),
    )
    care_episode = models.ForeignKey(
        'care.CareEpisode',
        null=True, blank=True,
        on_delete=models.PROTECT,
        related_name='prescriptions',
        verbose_name=_('care episode'),
    )
    hospital_center = models.ForeignKey(
        'centers.HospitalCenter',
        on_delete=models.PROTECT,
        related_name='prescriptions',
        verbose_name=_('hospital centre'),
    )
    prescribed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name='prescriptions',
        verbose_name=_('prescribed by'),
    )
    prescription_date = models.DateTimeField(_('prescription date'))
    instructions = models.TextField(_('instructions'), blank=True)
    status = models.CharField(
        _('status'), max_length=10,
        choices=StatusChoices.choices, default=StatusChoices.PENDING,
        db_index=True,
    )
    dispensed_at = models.DateTimeField(_('dispensed at'), null=True, blank=True)

    class Meta:
        verbose_name = _('prescription')
        verbose_name_plural = _('prescriptions')
        ordering = ['-prescription_date']
        indexes = [
            models.Index(fields=['hospital_center', 'status'], name='presc_center_status_idx'),
            models.Index(fields=['patient', 'prescription_date'], name='presc_patient_date_idx'),
        ]

    def __str__(self):
        return f'Prescription {str(self.pk)[:8]} — {self.patient}'


class PrescriptionItem(BaseModel):
    prescription = models.ForeignKey(
        Prescription,
        on_delete=models.CASCADE,
        related_name='items',
        verbose_name=_('prescription'),
    )
    product = models.ForeignKey(
        'catalog.Product',
        on_delete=models.PROTECT,
        related_name='prescription_items',
        verbose_name=_('product'),
    )
    quantity = models.DecimalField(_('quantity'), max_digits=12, decimal_places=2)
    dosage = models.CharField(_('dosage'), max_length=100, blank=True)
    frequency = models.CharField(_('frequency'), max_length=100, blank=True)
    duration = models.CharField(_('duration'), max_length=100, blank=True)
    instructions = models.TextField(_('instructions'), blank=True)

    class Meta:
        verbose_name = _('prescription item')
        verbose_name_plural = _('prescription items')
        ordering = ['created_at']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gt=0),
                name='prescription_item_quantity_positive',
            ),
        ]

    def __str__(self):
        return f'{self.product} × {self.quantity}'
