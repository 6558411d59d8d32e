"""
Centers — Django Admin Configuration

@file centers/admin.py
"""

from django.contrib import admin

from .models import HospitalCenter


@admin.register(HospitalCenter)
class HospitalCenterAdmin(admin.ModelAdmin):
    list_display = ('name', 'phone_number', 'email', 'is_active', 'created_at')
    list_filter = ('is_active',)
    search_fields = ('name', 'address', 'email')
    readonly_fields = ('id', 'created_at', 'updated_at', 'created_by', 'updated_by')
    ordering = ('name',)
