"""
Care — URL Configuration

@file care/urls.py
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import CareEpisodeViewSet, CareServiceViewSet, CareTypeViewSet

app_name = 'care'

router = DefaultRouter()
router.register('types', CareTypeViewSet, basename='care-type')
router.register('episodes', CareEpisodeViewSet, basename='episode')
router.register('services', CareServiceViewSet, basename='care-service')

urlpatterns = [
    path('', include(router.urls)),
]
