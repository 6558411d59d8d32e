"""
Patients — Django Admin Configuration

@file patients/admin.py
"""

from django.contrib import admin

from .models import Diagnosis, Patient


class DiagnosisInline(admin.TabularInline):
    model = Diagnosis
    extra = 0
    fields = ('name', 'code', 'severity', 'diagnosis_date', 'hospital_center', 'diagnosed_by', 'is_active')
    raw_id_fields = ('hospital_center', 'diagnosed_by')


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ('last_name', 'first_name', 'gender', 'date_of_birth', 'phone_number', 'is_active')
    list_filter = ('gender', 'is_active')
    search_fields = ('first_name', 'last_name', 'phone_number', 'email')
    readonly_fields = ('id', 'created_at', 'updated_at')
    inlines = [DiagnosisInline]


@admin.register(Diagnosis)
class DiagnosisAdmin(admin.ModelAdmin):
    list_display = ('name', 'code', 'patient', 'hospital_center', 'severity', 'diagnosis_date', 'is_active')
    list_filter = ('is_active', 'severity', 'hospital_center')
    search_fields = ('name', 'code', 'patient__last_name')
    raw_id_fields = ('patient', 'diagnosed_by')
    date_hierarchy = 'diagnosis_date'
