"""
Catalog — Views

Read-only product catalogue. Products are maintained in the admin.

@file catalog/views.py
"""

from rest_framework import viewsets
from rest_framework.permissions import IsAuthenticated

from .models import Product, ProductCategory
from .serializers import ProductCategorySerializer, ProductReadSerializer


class ProductCategoryViewSet(viewsets.ReadOnlyModelViewSet):
    permission_classes = [IsAuthenticated]
    serializer_class = ProductCategorySerializer
    filterset_fields = ['is_active']
    pagination_class = None

    def get_queryset(self):
        return ProductCategory.objects.order_by('name')


class ProductViewSet(viewsets.ReadOnlyModelViewSet):
    permission_classes = [IsAuthenticated]
    serializer_class = ProductReadSerializer
    filterset_fields = ['category', 'is_active']
    search_fields = ['name', 'description']
    ordering_fields = ['name', 'selling_price']
    ordering = ['name']

    def get_queryset(self):
        return Product.objects.select_related('category')
