"""
Prescriptions — URL Configuration

@file prescriptions/urls.py
"""

from django.urls import include, path
from rest_framework.routers import SimpleRouter

from .views import PrescriptionViewSet

app_name = 'prescriptions'

router = SimpleRouter()
router.register('', PrescriptionViewSet, basename='prescription')

urlpatterns = [
    path('', include(router.urls)),
]
