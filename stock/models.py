"""
Stock — Models

One StockInventory row per (product, centre) holds the current balance
and is mutated in place by every movement. StockMovement is the signed,
append-only ledger behind it: negative quantities are consumption.
Movement records are INSERT ONLY — never update or delete.

@file stock/models.py
"""

import uuid

from django.conf import settings
from django.db import models
from django.utils.translation import gettext_lazy as _

from core.models import BaseModel


class StockInventory(BaseModel):
    """
    Current balance of a product in a centre. current_quantity must
    never go below zero; the stock service enforces it with row locks
    and conditional updates.
    """

    product = models.ForeignKey(
        'catalog.Product',
        on_delete=models.PROTECT,
        related_name='inventories',
        verbose_name=_('product'),
    )
    hospital_center = models.ForeignKey(
        'centers.HospitalCenter',
        on_delete=models.PROTECT,
        related_name='inventories',
        verbose_name=_('hospital centre'),
    )
    current_quantity = models.DecimalField(
        _('current quantity'), max_digits=12, decimal_places=2, default=0,
    )
    minimum_threshold = models.DecimalField(
        _('minimum threshold'), max_digits=12, decimal_places=2, null=True, blank=True,
    )
    maximum_threshold = models.DecimalField(
        _('maximum threshold'), max_digits=12, decimal_places=2, null=True, blank=True,
    )

    class Meta:
        verbose_name = _('stock inventory')
        verbose_name_plural = _('stock inventories')
        ordering = ['hospital_center', 'product']
        constraints = [
            models.UniqueConstraint(
                fields=['product', 'hospital_center'],
                name='unique_inventory_product_center',
            ),
            models.CheckConstraint(
                condition=models.Q(current_quantity__gte=0),
                name='inventory_quantity_non_negative',
            ),
        ]

    def __str__(self):
        return f'{self.product_id}@{self.hospital_center_id}: {self.current_quantity}'


class StockMovement(models.Model):
    """
    A single immutable stock movement (insert only).

    reference_type + reference_id identify the business operation that
    caused it (Prescription, CareService, manual adjustment).
    """

    class MovementType(models.TextChoices):
        INITIAL = 'INITIAL', _('Stock initial')
        PRESCRIPTION = 'PRESCRIPTION', _('Prescription')
        CARE = 'CARE', _('Soins')
        ADJUSTMENT = 'ADJUSTMENT', _('Ajustement')
        TRANSFER_IN = 'TRANSFER_IN', _('Transfert entrant')
        TRANSFER_OUT = 'TRANSFER_OUT', _('Transfert sortant')

    id = models.UUIDField(
        primary_key=True, default=uuid.uuid4, editable=False,
    )
    product = models.ForeignKey(
        'catalog.Product',
        on_delete=models.PROTECT,
        related_name='stock_movements',
        verbose_name=_('product'),
    )
    hospital_center = models.ForeignKey(
        'centers.HospitalCenter',
        on_delete=models.PROTECT,
        related_name='stock_movements',
        verbose_name=_('hospital centre'),
    )
    movement_type = models.CharField(
        _('movement type'), max_length=16,
        choices=MovementType.choices, db_index=True,
    )
    quantity = models.DecimalField(
        _('quantity'), max_digits=12, decimal_places=2,
        help_text=_('Signed: negative for consumption'),
    )
    reference_type = models.CharField(
        _('reference type'), max_length=50, blank=True,
        help_text=_('Model name of source record'),
    )
    reference_id = models.UUIDField(_('reference ID'), null=True, blank=True)
    notes = models.TextField(_('notes'), blank=True)
    movement_date = models.DateTimeField(_('movement date'), db_index=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name='+',
        verbose_name=_('created by'),
    )
    created_at = models.DateTimeField(
        _('created at'), auto_now_add=True, db_index=True,
    )
    # No updated_at, rows are immutable.

    class Meta:
        verbose_name = _('stock movement')
        verbose_name_plural = _('stock movements')
        ordering = ['-movement_date']
        indexes = [
            models.Index(fields=['product', 'hospital_center', 'movement_date'], name='stock_product_center_idx'),
            models.Index(fields=['reference_type', 'reference_id'], name='stock_reference_idx'),
        ]

    def __str__(self):
        return f'{self.movement_type} {self.quantity} product={self.product_id} center={self.hospital_center_id}'

    def save(self, *args, **kwargs):
        if self.pk and StockMovement.objects.filter(pk=self.pk).exists():
            raise NotImplementedError('StockMovement is insert-only; updates are not allowed.')
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise NotImplementedError('StockMovement records cannot be deleted.')
