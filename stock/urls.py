"""
Stock — URL Configuration

@file stock/urls.py
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import StockInventoryViewSet, StockMovementViewSet

app_name = 'stock'

router = DefaultRouter()
router.register('inventory', StockInventoryViewSet, basename='inventory')
router.register('movements', StockMovementViewSet, basename='movement')

urlpatterns = [
    path('', include(router.urls)),
]
