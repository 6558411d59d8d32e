"""
Prescriptions — Serializers

@file prescriptions/serializers.py
"""

from rest_framework import serializers

from .models import Prescription, PrescriptionItem


class PrescriptionItemReadSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source='product.name', read_only=True)
    unit_of_measure = serializers.CharField(source='product.unit_of_measure', read_only=True)

    class Meta:
        model = PrescriptionItem
        fields = [
            'id', 'product', 'product_name', 'unit_of_measure', 'quantity',
            'dosage', 'frequency', 'duration', 'instructions',
        ]
        read_only_fields = fields


class PrescriptionReadSerializer(serializers.ModelSerializer):
    patient_name = serializers.CharField(source='patient.full_name', read_only=True)
    hospital_center_name = serializers.CharField(source='hospital_center.name', read_only=True)
    prescribed_by_name = serializers.CharField(source='prescribed_by.get_full_name', read_only=True, default=None)
    status_display = serializers.CharField(source='get_status_display', read_only=True)
    items = PrescriptionItemReadSerializer(many=True, read_only=True)

    class Meta:
        model = Prescription
        fields = [
            'id', 'patient', 'patient_name', 'diagnosis', 'care_episode',
            'hospital_center', 'hospital_center_name',
            'prescribed_by', 'prescribed_by_name', 'prescription_date',
            'instructions', 'status', 'status_display', 'dispensed_at',
            'items', 'created_at',
        ]
        read_only_fields = fields


class PrescriptionItemWriteSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    quantity = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    dosage = serializers.CharField(max_length=100, required=False, allow_blank=True)
    frequency = serializers.CharField(max_length=100, required=False, allow_blank=True)
    duration = serializers.CharField(max_length=100, required=False, allow_blank=True)
    instructions = serializers.CharField(required=False, allow_blank=True)


class PrescriptionCreateSerializer(serializers.Serializer):
    patient_id = serializers.UUIDField()
    center_id = serializers.UUIDField()
    diagnosis_id = serializers.UUIDField(required=False, allow_null=True)
    care_episode_id = serializers.UUIDField(required=False, allow_null=True)
    prescription_date = serializers.DateTimeField(required=False)
    instructions = serializers.CharField(required=False, allow_blank=True)
    items = PrescriptionItemWriteSerializer(many=True, allow_empty=False)


class PrescriptionUpdateSerializer(serializers.Serializer):
    diagnosis_id = serializers.UUIDField(required=False, allow_null=True)
    care_episode_id = serializers.UUIDField(required=False, allow_null=True)
    instructions = serializers.CharField(required=False, allow_blank=True)
