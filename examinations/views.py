"""
Examinations — Views

@file examinations/views.py
"""

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from users.models import User
from users.permissions import HasRoleOrReadOnly

from .models import Examination, ExaminationType
from .serializers import (
    CancelSerializer,
    CompleteSerializer,
    ExaminationCreateSerializer,
    ExaminationReadSerializer,
    ExaminationResultSerializer,
    ExaminationTypeSerializer,
    ResultCreateSerializer,
    ScheduleSerializer,
)
from .services import ExaminationService


class ExaminationTypeViewSet(viewsets.ReadOnlyModelViewSet):
    permission_classes = [IsAuthenticated]
    serializer_class = ExaminationTypeSerializer
    filterset_fields = ['is_active', 'category']
    search_fields = ['name', 'category']
    ordering = ['name']

    def get_queryset(self):
        return ExaminationType.objects.all()


class ExaminationViewSet(viewsets.ReadOnlyModelViewSet):
    permission_classes = [IsAuthenticated, HasRoleOrReadOnly]
    required_roles = [User.RoleChoices.MEDICAL_STAFF, User.RoleChoices.SUPER_ADMIN]
    serializer_class = ExaminationReadSerializer
    filterset_fields = ['patient', 'hospital_center', 'status', 'examination_type', 'care_episode']
    search_fields = ['patient__first_name', 'patient__last_name', 'examination_type__name']
    ordering_fields = ['request_date', 'scheduled_date', 'final_price']
    ordering = ['-request_date']

    def get_queryset(self):
        return Examination.objects.select_related('patient', 'examination_type', 'result')

    def _read(self, examination_id):
        return ExaminationReadSerializer(self.get_queryset().get(pk=examination_id)).data

    def create(self, request, *args, **kwargs):
        ser = ExaminationCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        examination = ExaminationService.create_examination(actor=request.user, **ser.validated_data)
        return Response(self._read(examination.pk), status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'], url_path='schedule')
    def schedule(self, request, pk=None):
        ser = ScheduleSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        ExaminationService.schedule_examination(examination_id=pk, actor=request.user, **ser.validated_data)
        return Response(self._read(pk))

    @action(detail=True, methods=['post'], url_path='complete')
    def complete(self, request, pk=None):
        ser = CompleteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        ExaminationService.complete_examination(examination_id=pk, actor=request.user, **ser.validated_data)
        return Response(self._read(pk))

    @action(detail=True, methods=['post'], url_path='cancel')
    def cancel(self, request, pk=None):
        ser = CancelSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        ExaminationService.cancel_examination(examination_id=pk, actor=request.user, **ser.validated_data)
        return Response(self._read(pk))

    @action(detail=True, methods=['post'], url_path='result')
    def result(self, request, pk=None):
        ser = ResultCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        result = ExaminationService.add_result(examination_id=pk, actor=request.user, **ser.validated_data)
        return Response(ExaminationResultSerializer(result).data, status=status.HTTP_201_CREATED)
