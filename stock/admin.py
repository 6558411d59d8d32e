"""
Stock — Django Admin Configuration

Inventory rows are viewable with thresholds editable; quantities only
move through StockService. StockMovement is read-only (insert-only):
model save() blocks updates; delete() raises.

@file stock/admin.py
"""

from django.contrib import admin
from django.utils.translation import gettext_lazy as _

from .models import StockInventory, StockMovement


@admin.register(StockInventory)
class StockInventoryAdmin(admin.ModelAdmin):
    list_display = (
        'product', 'hospital_center', 'current_quantity',
        'minimum_threshold', 'maximum_threshold', 'updated_at',
    )
    list_filter = ('hospital_center',)
    search_fields = ('product__name',)
    readonly_fields = (
        'id', 'product', 'hospital_center', 'current_quantity',
        'created_at', 'updated_at', 'created_by', 'updated_by',
    )
    list_select_related = ('product', 'hospital_center')

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(StockMovement)
class StockMovementAdmin(admin.ModelAdmin):
    list_display = (
        'movement_date', 'movement_type', 'product', 'hospital_center',
        'quantity', 'reference_type', 'reference_id', 'created_by',
    )
    list_filter = ('movement_type', 'hospital_center', 'movement_date')
    search_fields = ('product__name', 'reference_type', 'notes')
    readonly_fields = (
        'id', 'product', 'hospital_center', 'movement_type', 'quantity',
        'reference_type', 'reference_id', 'notes', 'movement_date',
        'created_by', 'created_at',
    )
    list_select_related = ('product', 'hospital_center', 'created_by')
    show_full_result_count = False
    list_per_page = 50
    date_hierarchy = 'movement_date'
    ordering = ('-movement_date',)

    fieldsets = (
        (_('Movement'), {
            'fields': ('id', 'product', 'hospital_center', 'movement_type', 'quantity', 'movement_date'),
        }),
        (_('Reference'), {
            'fields': ('reference_type', 'reference_id', 'notes'),
        }),
        (_('Audit'), {
            'fields': ('created_by', 'created_at'),
        }),
    )

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False  # insert only

    def has_delete_permission(self, request, obj=None):
        return False  # insert only
