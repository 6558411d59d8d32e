"""
Prescriptions — Views

Medical staff prescribe and dispense; dispensing returns the stock
tracking summary (movements and new levels).

@file prescriptions/views.py
"""

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import MethodNotAllowed
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from stock.serializers import AvailabilityReportSerializer, StockTrackingResultSerializer
from users.models import User
from users.permissions import HasRoleOrReadOnly

from .models import Prescription
from .serializers import (
    PrescriptionCreateSerializer,
    PrescriptionItemReadSerializer,
    PrescriptionItemWriteSerializer,
    PrescriptionReadSerializer,
    PrescriptionUpdateSerializer,
)
from .services import PrescriptionService


class PrescriptionViewSet(viewsets.ModelViewSet):
    permission_classes = [IsAuthenticated, HasRoleOrReadOnly]
    required_roles = [User.RoleChoices.MEDICAL_STAFF, User.RoleChoices.SUPER_ADMIN]
    http_method_names = ['get', 'post', 'patch', 'delete', 'head', 'options']
    serializer_class = PrescriptionReadSerializer
    filterset_fields = ['patient', 'hospital_center', 'status', 'care_episode']
    search_fields = ['patient__first_name', 'patient__last_name']
    ordering_fields = ['prescription_date']
    ordering = ['-prescription_date']

    def get_queryset(self):
        return (
            Prescription.objects
            .select_related('patient', 'hospital_center', 'prescribed_by')
            .prefetch_related('items__product')
        )

    def _read(self, prescription_id):
        return PrescriptionReadSerializer(self.get_queryset().get(pk=prescription_id)).data

    def create(self, request, *args, **kwargs):
        ser = PrescriptionCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        prescription = PrescriptionService.create_prescription(actor=request.user, **ser.validated_data)
        return Response(self._read(prescription.pk), status=status.HTTP_201_CREATED)

    def partial_update(self, request, *args, **kwargs):
        ser = PrescriptionUpdateSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)
        prescription = PrescriptionService.update_prescription(
            prescription_id=self.get_object().pk,
            actor=request.user,
            **ser.validated_data,
        )
        return Response(self._read(prescription.pk))

    def destroy(self, request, *args, **kwargs):
        raise MethodNotAllowed(request.method)

    @action(detail=True, methods=['post'], url_path='items')
    def add_item(self, request, pk=None):
        ser = PrescriptionItemWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        item = PrescriptionService.add_item(prescription_id=pk, actor=request.user, **ser.validated_data)
        return Response(PrescriptionItemReadSerializer(item).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['delete'], url_path=r'items/(?P<item_id>[^/.]+)')
    def remove_item(self, request, pk=None, item_id=None):
        PrescriptionService.remove_item(item_id=item_id, actor=request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['get'], url_path='availability')
    def availability(self, request, pk=None):
        report = PrescriptionService.check_availability(prescription_id=pk)
        return Response(AvailabilityReportSerializer(report).data)

    @action(detail=True, methods=['post'], url_path='dispense')
    def dispense(self, request, pk=None):
        result = PrescriptionService.dispense_prescription(prescription_id=pk, actor=request.user)
        return Response(StockTrackingResultSerializer(result).data)
