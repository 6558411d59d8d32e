"""
Finance — Django Admin Configuration

CashHandover is read-only (insert-only in the model). Payments are
voided through PaymentService, never edited here.

@file finance/admin.py
"""

from django.contrib import admin

from .models import CashHandover, Financier, Payment, PaymentMethod


@admin.register(PaymentMethod)
class PaymentMethodAdmin(admin.ModelAdmin):
    list_display = ('name', 'is_cash_equivalent', 'requires_bank_account', 'is_active')
    list_filter = ('is_cash_equivalent', 'is_active')


@admin.register(Financier)
class FinancierAdmin(admin.ModelAdmin):
    list_display = ('name', 'hospital_center', 'contact_info', 'is_active')
    list_filter = ('hospital_center', 'is_active')
    search_fields = ('name',)


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ('payment_date', 'reference_type', 'amount', 'payment_method', 'hospital_center', 'received_by')
    list_filter = ('payment_method', 'hospital_center', 'reference_type')
    search_fields = ('transaction_reference', 'notes')
    list_select_related = ('payment_method', 'hospital_center', 'received_by')
    date_hierarchy = 'payment_date'

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(CashHandover)
class CashHandoverAdmin(admin.ModelAdmin):
    list_display = (
        'handover_date', 'hospital_center', 'financier',
        'total_cash_amount', 'handover_amount', 'remaining_cash_amount', 'handed_over_by',
    )
    list_filter = ('hospital_center', 'financier')
    list_select_related = ('hospital_center', 'financier', 'handed_over_by')
    date_hierarchy = 'handover_date'

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
