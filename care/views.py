"""
Care — Views

Care episodes and their services. Medical staff write; every
authenticated user may read.

@file care/views.py
"""

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from stock.serializers import StockTrackingResultSerializer
from users.models import User
from users.permissions import HasRoleOrReadOnly

from .models import CareEpisode, CareService, CareType
from .serializers import (
    CareEpisodeCreateSerializer,
    CareEpisodeReadSerializer,
    CareEpisodeUpdateSerializer,
    CareServiceCreateSerializer,
    CareServiceReadSerializer,
    CareTypeSerializer,
    CompleteEpisodeSerializer,
    InterruptEpisodeSerializer,
)
from .services import CareEpisodeService


class CareTypeViewSet(viewsets.ReadOnlyModelViewSet):
    permission_classes = [IsAuthenticated]
    serializer_class = CareTypeSerializer
    filterset_fields = ['is_active']
    search_fields = ['name']
    ordering = ['name']

    def get_queryset(self):
        return CareType.objects.all()


class CareEpisodeViewSet(viewsets.ModelViewSet):
    permission_classes = [IsAuthenticated, HasRoleOrReadOnly]
    required_roles = [User.RoleChoices.MEDICAL_STAFF, User.RoleChoices.SUPER_ADMIN]
    http_method_names = ['get', 'post', 'patch', 'head', 'options']
    serializer_class = CareEpisodeReadSerializer
    filterset_fields = ['patient', 'hospital_center', 'status', 'primary_caregiver']
    search_fields = ['patient__first_name', 'patient__last_name', 'diagnosis__name']
    ordering_fields = ['episode_start_date', 'total_cost']
    ordering = ['-episode_start_date']

    def get_queryset(self):
        return CareEpisode.objects.select_related(
            'patient', 'diagnosis', 'hospital_center', 'primary_caregiver',
        )

    def create(self, request, *args, **kwargs):
        ser = CareEpisodeCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        episode = CareEpisodeService.create_episode(actor=request.user, **ser.validated_data)
        episode = CareEpisodeService.get_episode(episode.pk)
        return Response(CareEpisodeReadSerializer(episode).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, *args, **kwargs):
        ser = CareEpisodeUpdateSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)
        episode = CareEpisodeService.update_episode(
            episode_id=self.get_object().pk,
            actor=request.user,
            **ser.validated_data,
        )
        return Response(CareEpisodeReadSerializer(CareEpisodeService.get_episode(episode.pk)).data)

    @action(detail=True, methods=['post'], url_path='complete')
    def complete(self, request, pk=None):
        ser = CompleteEpisodeSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        CareEpisodeService.complete_episode(episode_id=pk, actor=request.user, **ser.validated_data)
        return Response(CareEpisodeReadSerializer(CareEpisodeService.get_episode(pk)).data)

    @action(detail=True, methods=['post'], url_path='interrupt')
    def interrupt(self, request, pk=None):
        ser = InterruptEpisodeSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        CareEpisodeService.interrupt_episode(episode_id=pk, actor=request.user, **ser.validated_data)
        return Response(CareEpisodeReadSerializer(CareEpisodeService.get_episode(pk)).data)

    @action(detail=True, methods=['get', 'post'], url_path='services')
    def services(self, request, pk=None):
        """GET lists the episode's care services; POST records a new one."""
        if request.method == 'GET':
            qs = (
                CareService.objects
                .filter(episode_id=self.get_object().pk)
                .select_related('care_type', 'administered_by')
                .prefetch_related('products__product')
                .order_by('-service_date')
            )
            page = self.paginate_queryset(qs)
            if page is not None:
                return self.get_paginated_response(CareServiceReadSerializer(page, many=True).data)
            return Response(CareServiceReadSerializer(qs, many=True).data)

        ser = CareServiceCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = dict(ser.validated_data)
        data['products'] = [(p['product_id'], p['quantity']) for p in data.get('products', [])]
        care_service = CareEpisodeService.add_care_service(episode_id=pk, actor=request.user, **data)
        return Response(CareServiceReadSerializer(care_service).data, status=status.HTTP_201_CREATED)


class CareServiceViewSet(viewsets.ReadOnlyModelViewSet):
    permission_classes = [IsAuthenticated, HasRoleOrReadOnly]
    required_roles = [User.RoleChoices.MEDICAL_STAFF, User.RoleChoices.SUPER_ADMIN]
    serializer_class = CareServiceReadSerializer
    filterset_fields = ['episode', 'care_type', 'administered_by']
    ordering = ['-service_date']

    def get_queryset(self):
        return (
            CareService.objects
            .select_related('care_type', 'administered_by')
            .prefetch_related('products__product')
        )

    @action(detail=True, methods=['post'], url_path='consume-products')
    def consume_products(self, request, pk=None):
        result = CareEpisodeService.record_care_service_product_usage(
            care_service_id=pk, actor=request.user,
        )
        return Response(StockTrackingResultSerializer(result).data, status=status.HTTP_201_CREATED)
