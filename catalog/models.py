"""
Catalog — Models

Products consumed by prescriptions and care services, grouped by
category. Inventory per centre lives in the stock app.

@file catalog/models.py
"""

from django.db import models
from django.utils.translation import gettext_lazy as _

from core.models import ActivatableModel


class ProductCategory(ActivatableModel):
    name = models.CharField(_('name'), max_length=100, unique=True)
    description = models.TextField(_('description'), blank=True)

    class Meta:
        verbose_name = _('product category')
        verbose_name_plural = _('product categories')
        ordering = ['name']

    def __str__(self):
        return self.name


class Product(ActivatableModel):
    name = models.CharField(_('name'), max_length=200)
    description = models.TextField(_('description'), blank=True)
    category = models.ForeignKey(
        ProductCategory,
        on_delete=models.PROTECT,
        related_name='products',
        verbose_name=_('category'),
    )
    unit_of_measure = models.CharField(_('unit of measure'), max_length=30, default='unité')
    selling_price = models.DecimalField(
        _('selling price'), max_digits=12, decimal_places=2, default=0,
    )

    class Meta:
        verbose_name = _('product')
        verbose_name_plural = _('products')
        ordering = ['name']

    def __str__(self):
        return f'{self.name} ({self.unit_of_measure})'
