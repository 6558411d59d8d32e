"""
Examinations — Django Admin Configuration

@file examinations/admin.py
"""

from django.contrib import admin

from .models import Examination, ExaminationResult, ExaminationType


@admin.register(ExaminationType)
class ExaminationTypeAdmin(admin.ModelAdmin):
    list_display = ('name', 'category', 'base_price', 'subcontractor_price', 'is_active')
    list_filter = ('category', 'is_active')
    search_fields = ('name',)


class ExaminationResultInline(admin.StackedInline):
    model = ExaminationResult
    extra = 0
    can_delete = False
    readonly_fields = ('result_data', 'result_notes', 'attachment_path', 'reported_by', 'report_date')


@admin.register(Examination)
class ExaminationAdmin(admin.ModelAdmin):
    list_display = ('examination_type', 'patient', 'hospital_center', 'status', 'request_date', 'final_price')
    list_filter = ('status', 'hospital_center', 'examination_type')
    search_fields = ('patient__first_name', 'patient__last_name')
    readonly_fields = ('status', 'final_price', 'discount_amount', 'performed_date')
    list_select_related = ('examination_type', 'patient', 'hospital_center')
    date_hierarchy = 'request_date'
    inlines = [ExaminationResultInline]
