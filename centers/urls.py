"""
Centers — URL Configuration

@file centers/urls.py
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import HospitalCenterViewSet

app_name = 'centers'

router = DefaultRouter()
router.register('', HospitalCenterViewSet, basename='center')

urlpatterns = [
    path('', include(router.urls)),
]
