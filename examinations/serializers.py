"""
Examinations — Serializers

@file examinations/serializers.py
"""

from rest_framework import serializers

from .models import Examination, ExaminationResult, ExaminationType


class ExaminationTypeSerializer(serializers.ModelSerializer):
    class Meta:
        model = ExaminationType
        fields = ['id', 'name', 'description', 'category', 'base_price', 'subcontractor_price', 'is_active']
        read_only_fields = fields


class ExaminationResultSerializer(serializers.ModelSerializer):
    reported_by_name = serializers.CharField(source='reported_by.get_full_name', read_only=True, default=None)

    class Meta:
        model = ExaminationResult
        fields = [
            'id', 'result_data', 'result_notes', 'attachment_path',
            'reported_by', 'reported_by_name', 'report_date',
        ]
        read_only_fields = fields


class ExaminationReadSerializer(serializers.ModelSerializer):
    patient_name = serializers.CharField(source='patient.full_name', read_only=True)
    examination_type_name = serializers.CharField(source='examination_type.name', read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)
    result = ExaminationResultSerializer(read_only=True)

    class Meta:
        model = Examination
        fields = [
            'id', 'patient', 'patient_name', 'examination_type', 'examination_type_name',
            'care_episode', 'hospital_center', 'requested_by', 'request_date',
            'scheduled_date', 'status', 'status_display', 'final_price',
            'discount_amount', 'notes', 'performed_by', 'performed_date',
            'result', 'created_at',
        ]
        read_only_fields = fields


class ExaminationCreateSerializer(serializers.Serializer):
    patient_id = serializers.UUIDField()
    examination_type_id = serializers.UUIDField()
    center_id = serializers.UUIDField()
    care_episode_id = serializers.UUIDField(required=False, allow_null=True)
    request_date = serializers.DateTimeField(required=False)
    scheduled_date = serializers.DateTimeField(required=False, allow_null=True)
    discount_amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, min_value=0)
    notes = serializers.CharField(required=False, allow_blank=True)


class ScheduleSerializer(serializers.Serializer):
    scheduled_date = serializers.DateTimeField()
    performed_by_id = serializers.UUIDField()
    notes = serializers.CharField(required=False, allow_blank=True)


class CompleteSerializer(serializers.Serializer):
    performed_date = serializers.DateTimeField(required=False)


class CancelSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=1000)


class ResultCreateSerializer(serializers.Serializer):
    result_data = serializers.CharField(required=False, allow_blank=True)
    result_notes = serializers.CharField(required=False, allow_blank=True)
    attachment_path = serializers.CharField(required=False, allow_blank=True, max_length=500)
    report_date = serializers.DateTimeField(required=False)
