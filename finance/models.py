"""
Finance — Models

Payments received at a centre's cash desk and the cash handovers made
to financiers. The cash balance is derived from both streams:
the last handover's remainder plus the cash received since.

A payment is voided by prefixing its notes with CANCELLED_PAYMENT_MARKER;
it is never deleted. CashHandover records are INSERT ONLY.

@file finance/models.py
"""

from django.conf import settings
from django.db import models
from django.db.models.functions import Lower
from django.utils.translation import gettext_lazy as _

from core.constants import CANCELLED_PAYMENT_MARKER
from core.models import ActivatableModel, BaseModel


class PaymentMethod(ActivatableModel):
    name = models.CharField(_('name'), max_length=100, unique=True)
    requires_bank_account = models.BooleanField(_('requires bank account'), default=False)
    is_cash_equivalent = models.BooleanField(
        _('cash equivalent'), default=False,
        help_text=_('Payments with this method are counted in the cash desk balance'),
    )

    class Meta:
        verbose_name = _('payment method')
        verbose_name_plural = _('payment methods')
        ordering = ['name']

    def __str__(self):
        return self.name


class Financier(ActivatableModel):
    """External party receiving cash handovers from one centre."""

    name = models.CharField(_('name'), max_length=200)
    hospital_center = models.ForeignKey(
        'centers.HospitalCenter',
        on_delete=models.PROTECT,
        related_name='financiers',
        verbose_name=_('hospital centre'),
    )
    contact_info = models.CharField(_('contact info'), max_length=300, blank=True)

    class Meta:
        verbose_name = _('financier')
        verbose_name_plural = _('financiers')
        ordering = ['name']
        constraints = [
            models.UniqueConstraint(
                Lower('name'), 'hospital_center',
                name='unique_financier_name_per_center',
            ),
        ]

    def __str__(self):
        return self.name


class Payment(BaseModel):

    class ReferenceType(models.TextChoices):
        CARE_EPISODE = 'CARE_EPISODE', _('Épisode de soins')
        EXAMINATION = 'EXAMINATION', _('Examen')

    reference_type = models.CharField(_('reference type'), max_length=20, choices=ReferenceType.choices)
    reference_id = models.UUIDField(_('reference ID'))
    patient = models.ForeignKey(
        'patients.Patient',
        null=True, blank=True,
        on_delete=models.PROTECT,
        related_name='payments',
        verbose_name=_('patient'),
    )
    hospital_center = models.ForeignKey(
        'centers.HospitalCenter',
        on_delete=models.PROTECT,
        related_name='payments',
        verbose_name=_('hospital centre'),
    )
    payment_method = models.ForeignKey(
        PaymentMethod,
        on_delete=models.PROTECT,
        related_name='payments',
        verbose_name=_('payment method'),
    )
    amount = models.DecimalField(_('amount'), max_digits=14, decimal_places=2)
    payment_date = models.DateTimeField(_('payment date'))
    received_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name='received_payments',
        verbose_name=_('received by'),
    )
    transaction_reference = models.CharField(_('transaction reference'), max_length=100, blank=True)
    notes = models.TextField(_('notes'), blank=True)

    class Meta:
        verbose_name = _('payment')
        verbose_name_plural = _('payments')
        ordering = ['-payment_date']
        indexes = [
            models.Index(fields=['hospital_center', 'payment_date'], name='payment_center_date_idx'),
            models.Index(fields=['reference_type', 'reference_id'], name='payment_reference_idx'),
        ]
        constraints = [
            models.CheckConstraint(condition=models.Q(amount__gt=0), name='payment_amount_positive'),
        ]

    def __str__(self):
        return f'{self.amount} — {self.get_reference_type_display()} #{self.reference_id}'

    @property
    def is_cancelled(self) -> bool:
        return (self.notes or '').startswith(CANCELLED_PAYMENT_MARKER)


class CashHandover(BaseModel):
    """
    Cash handed from a centre to a financier. Immutable once written:
    total_cash_amount = handover_amount + remaining_cash_amount.
    """

    hospital_center = models.ForeignKey(
        'centers.HospitalCenter',
        on_delete=models.PROTECT,
        related_name='cash_handovers',
        verbose_name=_('hospital centre'),
    )
    financier = models.ForeignKey(
        Financier,
        on_delete=models.PROTECT,
        related_name='handovers',
        verbose_name=_('financier'),
    )
    handover_date = models.DateTimeField(_('handover date'))
    total_cash_amount = models.DecimalField(_('total cash'), max_digits=14, decimal_places=2)
    handover_amount = models.DecimalField(_('handover amount'), max_digits=14, decimal_places=2)
    remaining_cash_amount = models.DecimalField(_('remaining cash'), max_digits=14, decimal_places=2)
    handed_over_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name='cash_handovers',
        verbose_name=_('handed over by'),
    )
    notes = models.TextField(_('notes'), blank=True)

    class Meta:
        verbose_name = _('cash handover')
        verbose_name_plural = _('cash handovers')
        ordering = ['-handover_date']
        indexes = [
            models.Index(fields=['hospital_center', 'handover_date'], name='handover_center_date_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(handover_amount__gte=0) & models.Q(remaining_cash_amount__gte=0),
                name='handover_amounts_non_negative',
            ),
        ]

    def __str__(self):
        return f'Remise {self.handover_amount} → {self.financier} ({self.handover_date:%Y-%m-%d})'

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise NotImplementedError('CashHandover is insert-only; updates are not allowed.')
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise NotImplementedError('CashHandover records cannot be deleted.')
