"""
Catalog — Django Admin Configuration

@file catalog/admin.py
"""

from django.contrib import admin

from .models import Product, ProductCategory


@admin.register(ProductCategory)
class ProductCategoryAdmin(admin.ModelAdmin):
    list_display = ('name', 'is_active')
    list_filter = ('is_active',)
    search_fields = ('name',)


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ('name', 'category', 'unit_of_measure', 'selling_price', 'is_active')
    list_filter = ('category', 'is_active')
    search_fields = ('name', 'description')
    list_select_related = ('category',)
    readonly_fields = ('id', 'created_at', 'updated_at', 'created_by', 'updated_by')
