"""
Users — Django Admin Configuration

Staff accounts with role filter.

@file users/admin.py
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils.translation import gettext_lazy as _

from .models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ('email', 'get_full_name', 'role', 'is_active', 'is_staff', 'date_joined')
    list_filter = ('role', 'is_active', 'is_staff', 'is_superuser')
    search_fields = ('email', 'first_name', 'last_name', 'phone')
    readonly_fields = ('id', 'created_at', 'updated_at', 'date_joined', 'last_login')
    ordering = ('last_name', 'first_name')
    list_per_page = 30

    fieldsets = (
        (None, {'fields': ('id', 'email', 'password')}),
        (_('Identity'), {'fields': ('first_name', 'last_name', 'phone')}),
        (_('Role & access'), {
            'fields': ('role', 'is_active', 'is_staff', 'is_superuser', 'groups', 'user_permissions'),
        }),
        (_('Dates'), {'fields': ('date_joined', 'last_login', 'created_at', 'updated_at')}),
    )
    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('email', 'role', 'password1', 'password2'),
        }),
    )
