"""
Stock — Serializers

Inventory rows and movements are read-only over the API; writes go
through StockService. Result serializers read the service's value
objects directly.

@file stock/serializers.py
"""

from rest_framework import serializers

from .models import StockInventory, StockMovement


class StockInventoryReadSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source='product.name', read_only=True)
    unit_of_measure = serializers.CharField(source='product.unit_of_measure', read_only=True)
    hospital_center_name = serializers.CharField(source='hospital_center.name', read_only=True)

    class Meta:
        model = StockInventory
        fields = [
            'id', 'product', 'product_name', 'unit_of_measure',
            'hospital_center', 'hospital_center_name',
            'current_quantity', 'minimum_threshold', 'maximum_threshold',
            'updated_at',
        ]
        read_only_fields = fields


class StockMovementReadSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source='product.name', read_only=True)
    movement_type_display = serializers.CharField(source='get_movement_type_display', read_only=True)
    created_by_name = serializers.CharField(source='created_by.get_full_name', read_only=True, default=None)

    class Meta:
        model = StockMovement
        fields = [
            'id', 'product', 'product_name', 'hospital_center',
            'movement_type', 'movement_type_display', 'quantity',
            'reference_type', 'reference_id', 'notes', 'movement_date',
            'created_by', 'created_by_name',
        ]
        read_only_fields = fields


class StockDemandSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    quantity = serializers.DecimalField(max_digits=12, decimal_places=2)


class AvailabilityRequestSerializer(serializers.Serializer):
    hospital_center = serializers.UUIDField()
    items = StockDemandSerializer(many=True, allow_empty=False)


class StockShortageSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    product_name = serializers.CharField()
    requested_quantity = serializers.DecimalField(max_digits=12, decimal_places=2)
    available_quantity = serializers.DecimalField(max_digits=12, decimal_places=2)


class AvailabilityReportSerializer(serializers.Serializer):
    is_available = serializers.BooleanField()
    shortages = StockShortageSerializer(many=True)


class MovementResultSerializer(serializers.Serializer):
    movement_id = serializers.UUIDField()
    product_id = serializers.UUIDField()
    product_name = serializers.CharField()
    unit_of_measure = serializers.CharField()
    quantity = serializers.DecimalField(max_digits=12, decimal_places=2)
    new_stock_level = serializers.DecimalField(max_digits=12, decimal_places=2)
    movement_type = serializers.CharField()
    movement_date = serializers.DateTimeField()


class StockTrackingResultSerializer(serializers.Serializer):
    source_type = serializers.CharField()
    source_id = serializers.UUIDField()
    reference_number = serializers.CharField()
    hospital_center_id = serializers.UUIDField()
    hospital_center_name = serializers.CharField()
    movements = MovementResultSerializer(many=True)


class StockAdjustmentSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    hospital_center = serializers.UUIDField()
    quantity_delta = serializers.DecimalField(max_digits=12, decimal_places=2)
    reason = serializers.CharField(max_length=500)


class ThresholdSerializer(serializers.Serializer):
    minimum_threshold = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)
    maximum_threshold = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)


class StockAlertSerializer(serializers.Serializer):
    inventory_id = serializers.UUIDField()
    product_id = serializers.UUIDField()
    product_name = serializers.CharField()
    category_name = serializers.CharField()
    unit_of_measure = serializers.CharField()
    hospital_center_id = serializers.UUIDField()
    hospital_center_name = serializers.CharField()
    current_quantity = serializers.DecimalField(max_digits=12, decimal_places=2)
    minimum_threshold = serializers.DecimalField(max_digits=12, decimal_places=2, allow_null=True)
    maximum_threshold = serializers.DecimalField(max_digits=12, decimal_places=2, allow_null=True)
    level = serializers.CharField()
    last_movement_date = serializers.DateTimeField(allow_null=True)
