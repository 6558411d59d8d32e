"""
Examinations — Models

Lab and imaging requests with their single result.

Status: REQUESTED → SCHEDULED → COMPLETED
        REQUESTED | SCHEDULED → CANCELLED

@file examinations/models.py
"""

from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils.translation import gettext_lazy as _

from core.models import ActivatableModel, BaseModel


class ExaminationType(ActivatableModel):
    name = models.CharField(_('name'), max_length=150, unique=True)
    description = models.TextField(_('description'), blank=True)
    category = models.CharField(_('category'), max_length=100, blank=True)
    base_price = models.DecimalField(
        _('base price'), max_digits=12, decimal_places=2, default=Decimal('0'),
    )
    subcontractor_price = models.DecimalField(
        _('subcontractor price'), max_digits=12, decimal_places=2, null=True, blank=True,
    )

    class Meta:
        verbose_name = _('examination type')
        verbose_name_plural = _('examination types')
        ordering = ['name']

    def __str__(self):
        return self.name


class Examination(BaseModel):

    class StatusChoices(models.TextChoices):
        REQUESTED = 'REQUESTED', _('Demandé')
        SCHEDULED = 'SCHEDULED', _('Planifié')
        COMPLETED = 'COMPLETED', _('Réalisé')
        CANCELLED = 'CANCELLED', _('Annulé')

    patient = models.ForeignKey(
        'patients.Patient',
        on_delete=models.PROTECT,
        related_name='examinations',
        verbose_name=_('patient'),
    )
    examination_type = models.ForeignKey(
        ExaminationType,
        on_delete=models.PROTECT,
        related_name='examinations',
        verbose_name=_('examination type'),
    )
    care_episode = models.ForeignKey(
        'care.CareEpisode',
        null=True, blank=True,
        on_delete=models.PROTECT,
        related_name='examinations',
        verbose_name=_('care episode'),
    )
    hospital_center = models.ForeignKey(
        'centers.HospitalCenter',
        on_delete=models.PROTECT,
        related_name='examinations',
        verbose_name=_('hospital centre'),
    )
    requested_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name='requested_examinations',
        verbose_name=_('requested by'),
    )
    request_date = models.DateTimeField(_('request date'))
    scheduled_date = models.DateTimeField(_('scheduled date'), null=True, blank=True)
    status = models.CharField(
        _('status'), max_length=10,
        choices=StatusChoices.choices, default=StatusChoices.REQUESTED,
        db_index=True,
    )
    final_price = models.DecimalField(_('final price'), max_digits=12, decimal_places=2)
    discount_amount = models.DecimalField(
        _('discount'), max_digits=12, decimal_places=2, default=Decimal('0'),
    )
    notes = models.TextField(_('notes'), blank=True)
    performed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name='performed_examinations',
        verbose_name=_('performed by'),
    )
    performed_date = models.DateTimeField(_('performed date'), null=True, blank=True)

    class Meta:
        verbose_name = _('examination')
        verbose_name_plural = _('examinations')
        ordering = ['-request_date']
        indexes = [
            models.Index(fields=['hospital_center', 'status'], name='exam_center_status_idx'),
            models.Index(fields=['patient', 'request_date'], name='exam_patient_date_idx'),
        ]

    def __str__(self):
        return f'{self.examination_type} — {self.patient} ({self.get_status_display()})'


class ExaminationResult(BaseModel):
    examination = models.OneToOneField(
        Examination,
        on_delete=models.CASCADE,
        related_name='result',
        verbose_name=_('examination'),
    )
    result_data = models.TextField(_('result data'), blank=True)
    result_notes = models.TextField(_('result notes'), blank=True)
    attachment_path = models.CharField(_('attachment path'), max_length=500, blank=True)
    reported_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name='reported_examination_results',
        verbose_name=_('reported by'),
    )
    report_date = models.DateTimeField(_('report date'))

    class Meta:
        verbose_name = _('examination result')
        verbose_name_plural = _('examination results')

    def __str__(self):
        return f'Résultat {self.examination_id}'
