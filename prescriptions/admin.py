"""
Prescriptions — Django Admin Configuration

@file prescriptions/admin.py
"""

from django.contrib import admin

from .models import Prescription, PrescriptionItem


class PrescriptionItemInline(admin.TabularInline):
    model = PrescriptionItem
    extra = 0
    fields = ('product', 'quantity', 'dosage', 'frequency', 'duration')
    autocomplete_fields = ('product',)


@admin.register(Prescription)
class PrescriptionAdmin(admin.ModelAdmin):
    list_display = ('patient', 'hospital_center', 'prescribed_by', 'prescription_date', 'status')
    list_filter = ('status', 'hospital_center')
    search_fields = ('patient__first_name', 'patient__last_name')
    readonly_fields = ('status', 'dispensed_at', 'created_at', 'updated_at')
    list_select_related = ('patient', 'hospital_center', 'prescribed_by')
    date_hierarchy = 'prescription_date'
    inlines = [PrescriptionItemInline]
