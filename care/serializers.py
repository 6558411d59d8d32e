"""
Care — Serializers

@file care/serializers.py
"""

from rest_framework import serializers

from .models import CareEpisode, CareService, CareServiceProduct, CareType


class CareTypeSerializer(serializers.ModelSerializer):
    class Meta:
        model = CareType
        fields = ['id', 'name', 'description', 'base_price', 'is_active']
        read_only_fields = fields


class CareEpisodeReadSerializer(serializers.ModelSerializer):
    patient_name = serializers.CharField(source='patient.full_name', read_only=True)
    diagnosis_name = serializers.CharField(source='diagnosis.name', read_only=True)
    hospital_center_name = serializers.CharField(source='hospital_center.name', read_only=True)
    primary_caregiver_name = serializers.CharField(source='primary_caregiver.get_full_name', read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)

    class Meta:
        model = CareEpisode
        fields = [
            'id', 'patient', 'patient_name', 'diagnosis', 'diagnosis_name',
            'hospital_center', 'hospital_center_name',
            'primary_caregiver', 'primary_caregiver_name',
            'episode_start_date', 'episode_end_date',
            'status', 'status_display', 'interruption_reason',
            'total_cost', 'amount_paid', 'remaining_balance',
            'created_at', 'updated_at',
        ]
        read_only_fields = fields


class CareEpisodeCreateSerializer(serializers.Serializer):
    patient_id = serializers.UUIDField()
    diagnosis_id = serializers.UUIDField()
    center_id = serializers.UUIDField()
    primary_caregiver_id = serializers.UUIDField()
    episode_start_date = serializers.DateTimeField(required=False)


class CareEpisodeUpdateSerializer(serializers.Serializer):
    diagnosis_id = serializers.UUIDField(required=False)
    primary_caregiver_id = serializers.UUIDField(required=False)
    episode_start_date = serializers.DateTimeField(required=False)


class CompleteEpisodeSerializer(serializers.Serializer):
    completion_date = serializers.DateTimeField(required=False)


class InterruptEpisodeSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=1000)
    interruption_date = serializers.DateTimeField(required=False)


class CareServiceProductReadSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source='product.name', read_only=True)

    class Meta:
        model = CareServiceProduct
        fields = ['id', 'product', 'product_name', 'quantity_used', 'unit_cost', 'total_cost']
        read_only_fields = fields


class CareServiceReadSerializer(serializers.ModelSerializer):
    care_type_name = serializers.CharField(source='care_type.name', read_only=True)
    administered_by_name = serializers.CharField(source='administered_by.get_full_name', read_only=True)
    products = CareServiceProductReadSerializer(many=True, read_only=True)

    class Meta:
        model = CareService
        fields = [
            'id', 'episode', 'care_type', 'care_type_name',
            'administered_by', 'administered_by_name',
            'service_date', 'duration', 'notes', 'cost',
            'stock_consumed_at', 'products', 'created_at',
        ]
        read_only_fields = fields


class UsedProductSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    quantity = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)


class CareServiceCreateSerializer(serializers.Serializer):
    care_type_id = serializers.UUIDField()
    administered_by_id = serializers.UUIDField()
    service_date = serializers.DateTimeField(required=False)
    duration = serializers.IntegerField(required=False, allow_null=True, min_value=0)
    notes = serializers.CharField(required=False, allow_blank=True, default='')
    cost = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, min_value=0)
    products = UsedProductSerializer(many=True, required=False, default=list)
    consume_stock = serializers.BooleanField(required=False, default=True)
