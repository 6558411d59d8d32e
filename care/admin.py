"""
Care — Django Admin Configuration

Episodes and services are browsed here; costs and stock only change
through CareEpisodeService.

@file care/admin.py
"""

from django.contrib import admin

from .models import CareEpisode, CareService, CareServiceProduct, CareType


@admin.register(CareType)
class CareTypeAdmin(admin.ModelAdmin):
    list_display = ('name', 'base_price', 'is_active')
    list_filter = ('is_active',)
    search_fields = ('name',)


class CareServiceProductInline(admin.TabularInline):
    model = CareServiceProduct
    extra = 0
    readonly_fields = ('product', 'quantity_used', 'unit_cost', 'total_cost')
    can_delete = False


@admin.register(CareEpisode)
class CareEpisodeAdmin(admin.ModelAdmin):
    list_display = (
        'patient', 'diagnosis', 'hospital_center', 'status',
        'episode_start_date', 'total_cost', 'remaining_balance',
    )
    list_filter = ('status', 'hospital_center')
    search_fields = ('patient__first_name', 'patient__last_name', 'diagnosis__name')
    readonly_fields = ('total_cost', 'amount_paid', 'remaining_balance', 'created_at', 'updated_at')
    list_select_related = ('patient', 'diagnosis', 'hospital_center')
    date_hierarchy = 'episode_start_date'


@admin.register(CareService)
class CareServiceAdmin(admin.ModelAdmin):
    list_display = ('care_type', 'episode', 'administered_by', 'service_date', 'cost', 'stock_consumed_at')
    list_filter = ('care_type',)
    readonly_fields = ('cost', 'stock_consumed_at')
    list_select_related = ('care_type', 'episode', 'administered_by')
    inlines = [CareServiceProductInline]
