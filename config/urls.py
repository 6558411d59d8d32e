"""
HospiTrack-HMS — Root URL Configuration

All API endpoints are namespaced under /api/v1/.
The DRF browsable API is available for route inspection in development.

@file config/urls.py
"""

from django.contrib import admin
from django.urls import include, path
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.reverse import reverse

admin.site.site_header = 'HospiTrack-HMS Administration'
admin.site.site_title = 'HospiTrack-HMS'
admin.site.index_title = 'Hospital Management'


@api_view(['GET'])
@permission_classes([AllowAny])
def api_root(request, format=None):
    """HospiTrack-HMS API v1 endpoint directory."""
    return Response({
        'auth': {
            'login': reverse('api-v1:auth:login', request=request, format=format),
            'refresh': reverse('api-v1:auth:token-refresh', request=request, format=format),
            'logout': reverse('api-v1:auth:logout', request=request, format=format),
            'me': reverse('api-v1:auth:me', request=request, format=format),
        },
        'centers': reverse('api-v1:centers:center-list', request=request, format=format),
        'catalog': {
            'categories': reverse('api-v1:catalog:category-list', request=request, format=format),
            'products': reverse('api-v1:catalog:product-list', request=request, format=format),
        },
        'stock': {
            'inventory': reverse('api-v1:stock:inventory-list', request=request, format=format),
            'movements': reverse('api-v1:stock:movement-list', request=request, format=format),
        },
        'care': {
            'types': reverse('api-v1:care:care-type-list', request=request, format=format),
            'episodes': reverse('api-v1:care:episode-list', request=request, format=format),
            'services': reverse('api-v1:care:care-service-list', request=request, format=format),
        },
        'examinations': {
            'types': reverse('api-v1:examinations:examination-type-list', request=request, format=format),
            'requests': reverse('api-v1:examinations:examination-list', request=request, format=format),
        },
        'prescriptions': reverse('api-v1:prescriptions:prescription-list', request=request, format=format),
        'finance': {
            'payment_methods': reverse('api-v1:finance:payment-method-list', request=request, format=format),
            'payments': reverse('api-v1:finance:payment-list', request=request, format=format),
            'financiers': reverse('api-v1:finance:financier-list', request=request, format=format),
            'handovers': reverse('api-v1:finance:handover-list', request=request, format=format),
        },
    })


api_v1_patterns = [
    path('', api_root, name='api-root'),
    path('auth/', include('users.urls', namespace='auth')),
    path('centers/', include('centers.urls', namespace='centers')),
    path('catalog/', include('catalog.urls', namespace='catalog')),
    path('stock/', include('stock.urls', namespace='stock')),
    path('care/', include('care.urls', namespace='care')),
    path('examinations/', include('examinations.urls', namespace='examinations')),
    path('prescriptions/', include('prescriptions.urls', namespace='prescriptions')),
    path('finance/', include('finance.urls', namespace='finance')),
]

urlpatterns = [
    path('admin/', admin.site.urls),

    # DRF session auth (powers the "Log in" button on the browsable API)
    path('api/auth/', include('rest_framework.urls', namespace='rest_framework')),

    # Versioned API
    path('api/v1/', include((api_v1_patterns, 'api-v1'))),
]
