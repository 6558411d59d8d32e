"""
Finance — URL Configuration

@file finance/urls.py
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import (
    CashDeskViewSet,
    CashHandoverViewSet,
    FinancierViewSet,
    PaymentMethodViewSet,
    PaymentViewSet,
)

app_name = 'finance'

router = DefaultRouter()
router.register('payment-methods', PaymentMethodViewSet, basename='payment-method')
router.register('payments', PaymentViewSet, basename='payment')
router.register('financiers', FinancierViewSet, basename='financier')
router.register('handovers', CashHandoverViewSet, basename='handover')
router.register('cash-desk', CashDeskViewSet, basename='cash-desk')

urlpatterns = [
    path('', include(router.urls)),
]
