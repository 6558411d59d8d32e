"""
Centers — Views

Centre management for super administrators; any authenticated staff
member may list centres.

@file centers/views.py
"""

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from users.models import User
from users.permissions import HasRoleOrReadOnly

from .models import HospitalCenter
from .serializers import (
    ActiveStatusSerializer,
    HospitalCenterMinimalSerializer,
    HospitalCenterReadSerializer,
    HospitalCenterWriteSerializer,
)
from .services import HospitalCenterService


class HospitalCenterViewSet(viewsets.ModelViewSet):
    permission_classes = [IsAuthenticated, HasRoleOrReadOnly]
    required_roles = [User.RoleChoices.SUPER_ADMIN]
    http_method_names = ['get', 'post', 'patch', 'head', 'options']
    filterset_fields = ['is_active']
    search_fields = ['name', 'address', 'email']
    ordering_fields = ['name', 'created_at']
    ordering = ['name']

    def get_queryset(self):
        return HospitalCenter.objects.all()

    def get_serializer_class(self):
        if self.action in ('create', 'partial_update'):
            return HospitalCenterWriteSerializer
        if self.action == 'set_status':
            return ActiveStatusSerializer
        return HospitalCenterReadSerializer

    def create(self, request, *args, **kwargs):
        ser = HospitalCenterWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        center = HospitalCenterService.create_center(actor=request.user, **ser.validated_data)
        return Response(HospitalCenterReadSerializer(center).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, *args, **kwargs):
        ser = HospitalCenterWriteSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)
        center = HospitalCenterService.update_center(
            center_id=self.get_object().pk,
            actor=request.user,
            **ser.validated_data,
        )
        return Response(HospitalCenterReadSerializer(center).data)

    @action(detail=True, methods=['post'], url_path='status')
    def set_status(self, request, pk=None):
        ser = ActiveStatusSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        center = HospitalCenterService.set_active_status(
            center_id=pk,
            is_active=ser.validated_data['is_active'],
            actor=request.user,
        )
        return Response(HospitalCenterReadSerializer(center).data)

    @action(detail=False, methods=['get'], url_path='active', pagination_class=None)
    def active(self, request):
        """Select options: active centres only."""
        centers = HospitalCenterService.active_centers()
        return Response(HospitalCenterMinimalSerializer(centers, many=True).data)
