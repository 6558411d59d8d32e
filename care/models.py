"""
Care — Models

A care episode follows one patient for one diagnosis in one centre.
Care services delivered during the episode accumulate into its cost and
consume products from the centre's stock.

Episode status: ACTIVE → COMPLETED | INTERRUPTED (both terminal).

@file care/models.py
"""

from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils.translation import gettext_lazy as _

from core.models import ActivatableModel, BaseModel


class CareType(ActivatableModel):
    name = models.CharField(_('name'), max_length=150, unique=True)
    description = models.TextField(_('description'), blank=True)
    base_price = models.DecimalField(
        _('base price'), max_digits=12, decimal_places=2, default=Decimal('0'),
    )

    class Meta:
        verbose_name = _('care type')
        verbose_name_plural = _('care types')
        ordering = ['name']

    def __str__(self):
        return self.name


class CareEpisode(BaseModel):

    class StatusChoices(models.TextChoices):
        ACTIVE = 'ACTIVE', _('En cours')
        COMPLETED = 'COMPLETED', _('Terminé')
        INTERRUPTED = 'INTERRUPTED', _('Interrompu')

    patient = models.ForeignKey(
        'patients.Patient',
        on_delete=models.PROTECT,
        related_name='care_episodes',
        verbose_name=_('patient'),
    )
    diagnosis = models.ForeignKey(
        'patients.Diagnosis',
        on_delete=models.PROTECT,
        related_name='care_episodes',
        verbose_name=_('diagnosis'),
    )
    hospital_center = models.ForeignKey(
        'centers.HospitalCenter',
        on_delete=models.PROTECT,
        related_name='care_episodes',
        verbose_name=_('hospital centre'),
    )
    primary_caregiver = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='care_episodes',
        verbose_name=_('primary caregiver'),
    )
    episode_start_date = models.DateTimeField(_('start date'))
    episode_end_date = models.DateTimeField(_('end date'), null=True, blank=True)
    status = models.CharField(
        _('status'), max_length=12,
        choices=StatusChoices.choices, default=StatusChoices.ACTIVE,
        db_index=True,
    )
    interruption_reason = models.TextField(_('interruption reason'), blank=True)
    total_cost = models.DecimalField(
        _('total cost'), max_digits=14, decimal_places=2, default=Decimal('0'),
    )
    amount_paid = models.DecimalField(
        _('amount paid'), max_digits=14, decimal_places=2, default=Decimal('0'),
    )
    remaining_balance = models.DecimalField(
        _('remaining balance'), max_digits=14, decimal_places=2, default=Decimal('0'),
    )

    class Meta:
        verbose_name = _('care episode')
        verbose_name_plural = _('care episodes')
        ordering = ['-episode_start_date']
        indexes = [
            models.Index(fields=['patient', 'status'], name='care_episode_patient_idx'),
            models.Index(fields=['hospital_center', 'status'], name='care_episode_center_idx'),
        ]

    def __str__(self):
        return f'Épisode {self.patient} — {self.diagnosis.name} ({self.get_status_display()})'


class CareService(BaseModel):
    """One act of care within an episode. Products are consumed once."""

    episode = models.ForeignKey(
        CareEpisode,
        on_delete=models.PROTECT,
        related_name='care_services',
        verbose_name=_('episode'),
    )
    care_type = models.ForeignKey(
        CareType,
        on_delete=models.PROTECT,
        related_name='care_services',
        verbose_name=_('care type'),
    )
    administered_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='administered_care_services',
        verbose_name=_('administered by'),
    )
    service_date = models.DateTimeField(_('service date'))
    duration = models.PositiveIntegerField(_('duration (minutes)'), null=True, blank=True)
    notes = models.TextField(_('notes'), blank=True)
    cost = models.DecimalField(
        _('cost'), max_digits=12, decimal_places=2, default=Decimal('0'),
    )
    stock_consumed_at = models.DateTimeField(
        _('stock consumed at'), null=True, blank=True,
        help_text=_('Set once the products have been taken from stock'),
    )

    class Meta:
        verbose_name = _('care service')
        verbose_name_plural = _('care services')
        ordering = ['-service_date']

    def __str__(self):
        return f'{self.care_type} — {self.service_date:%Y-%m-%d}'

    @property
    def is_stock_consumed(self) -> bool:
        return self.stock_consumed_at is not None


class CareServiceProduct(BaseModel):
    care_service = models.ForeignKey(
        CareService,
        on_delete=models.CASCADE,
        related_name='products',
        verbose_name=_('care service'),
    )
    product = models.ForeignKey(
        'catalog.Product',
        on_delete=models.PROTECT,
        related_name='care_service_usages',
        verbose_name=_('product'),
    )
    quantity_used = models.DecimalField(_('quantity used'), max_digits=12, decimal_places=2)
    unit_cost = models.DecimalField(_('unit cost'), max_digits=12, decimal_places=2)
    total_cost = models.DecimalField(_('total cost'), max_digits=14, decimal_places=2)

    class Meta:
        verbose_name = _('care service product')
        verbose_name_plural = _('care service products')
        constraints = [
            models.UniqueConstraint(
                fields=['care_service', 'product'],
                name='unique_care_service_product',
            ),
        ]

    def __str__(self):
        return f'{self.product} × {self.quantity_used}'
