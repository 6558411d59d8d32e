"""
Examinations — URL Configuration

@file examinations/urls.py
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import ExaminationTypeViewSet, ExaminationViewSet

app_name = 'examinations'

router = DefaultRouter()
router.register('types', ExaminationTypeViewSet, basename='examination-type')
router.register('requests', ExaminationViewSet, basename='examination')

urlpatterns = [
    path('', include(router.urls)),
]
