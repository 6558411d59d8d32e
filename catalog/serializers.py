"""
Catalog — Serializers

@file catalog/serializers.py
"""

from rest_framework import serializers

from .models import Product, ProductCategory


class ProductCategorySerializer(serializers.ModelSerializer):
    class Meta:
        model = ProductCategory
        fields = ['id', 'name', 'description', 'is_active']
        read_only_fields = fields


class ProductReadSerializer(serializers.ModelSerializer):
    category_name = serializers.CharField(source='category.name', read_only=True)

    class Meta:
        model = Product
        fields = [
            'id', 'name', 'description', 'category', 'category_name',
            'unit_of_measure', 'selling_price', 'is_active',
        ]
        read_only_fields = fields
