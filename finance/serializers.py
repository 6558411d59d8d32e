"""
Finance — Serializers

Ledger results (position, movements, reconciliation) are plain
serializers over the service's value objects.

@file finance/serializers.py
"""

from rest_framework import serializers

from .models import CashHandover, Financier, Payment, PaymentMethod


class PaymentMethodSerializer(serializers.ModelSerializer):
    class Meta:
        model = PaymentMethod
        fields = ['id', 'name', 'requires_bank_account', 'is_cash_equivalent', 'is_active']
        read_only_fields = fields


class FinancierReadSerializer(serializers.ModelSerializer):
    hospital_center_name = serializers.CharField(source='hospital_center.name', read_only=True)

    class Meta:
        model = Financier
        fields = ['id', 'name', 'hospital_center', 'hospital_center_name', 'contact_info', 'is_active', 'created_at']
        read_only_fields = fields


class FinancierCreateSerializer(serializers.Serializer):
    center_id = serializers.UUIDField()
    name = serializers.CharField(max_length=200)
    contact_info = serializers.CharField(max_length=300, required=False, allow_blank=True)


class FinancierUpdateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200, required=False)
    contact_info = serializers.CharField(max_length=300, required=False, allow_blank=True)


class PaymentReadSerializer(serializers.ModelSerializer):
    payment_method_name = serializers.CharField(source='payment_method.name', read_only=True)
    received_by_name = serializers.CharField(source='received_by.get_full_name', read_only=True, default=None)
    is_cancelled = serializers.BooleanField(read_only=True)

    class Meta:
        model = Payment
        fields = [
            'id', 'reference_type', 'reference_id', 'patient', 'hospital_center',
            'payment_method', 'payment_method_name', 'amount', 'payment_date',
            'received_by', 'received_by_name', 'transaction_reference', 'notes',
            'is_cancelled',
        ]
        read_only_fields = fields


class PaymentCreateSerializer(serializers.Serializer):
    reference_type = serializers.ChoiceField(choices=Payment.ReferenceType.choices)
    reference_id = serializers.UUIDField()
    center_id = serializers.UUIDField()
    payment_method_id = serializers.UUIDField()
    amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    patient_id = serializers.UUIDField(required=False, allow_null=True)
    transaction_reference = serializers.CharField(max_length=100, required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)


class PaymentCancelSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=500)


class CashHandoverReadSerializer(serializers.ModelSerializer):
    financier_name = serializers.CharField(source='financier.name', read_only=True)
    hospital_center_name = serializers.CharField(source='hospital_center.name', read_only=True)
    handed_over_by_name = serializers.CharField(source='handed_over_by.get_full_name', read_only=True, default=None)

    class Meta:
        model = CashHandover
        fields = [
            'id', 'hospital_center', 'hospital_center_name', 'financier', 'financier_name',
            'handover_date', 'total_cash_amount', 'handover_amount', 'remaining_cash_amount',
            'handed_over_by', 'handed_over_by_name', 'notes', 'created_at',
        ]
        read_only_fields = fields


class CashHandoverCreateSerializer(serializers.Serializer):
    center_id = serializers.UUIDField()
    financier_id = serializers.UUIDField()
    total_cash_amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    handover_amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    remaining_cash_amount = serializers.DecimalField(max_digits=14, decimal_places=2, required=False, default=0)
    notes = serializers.CharField(required=False, allow_blank=True)


class CashBalanceSerializer(serializers.Serializer):
    hospital_center_id = serializers.UUIDField()
    current_balance = serializers.DecimalField(max_digits=14, decimal_places=2)


class CashMovementSerializer(serializers.Serializer):
    date = serializers.DateTimeField()
    type = serializers.CharField()
    description = serializers.CharField()
    amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    direction = serializers.CharField()
    reference_type = serializers.CharField()
    reference_id = serializers.UUIDField()
    balance = serializers.DecimalField(max_digits=14, decimal_places=2)


class CashPositionSerializer(serializers.Serializer):
    hospital_center_id = serializers.UUIDField()
    hospital_center_name = serializers.CharField()
    current_balance = serializers.DecimalField(max_digits=14, decimal_places=2)
    last_handover_date = serializers.DateTimeField(allow_null=True)
    last_handover_amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    receipts_since_last_handover = serializers.DecimalField(max_digits=14, decimal_places=2)
    days_since_last_handover = serializers.IntegerField()
    average_daily_receipts = serializers.DecimalField(max_digits=14, decimal_places=2)


class ReceiptsByReferenceSerializer(serializers.Serializer):
    reference_type = serializers.CharField()
    total_amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    count = serializers.IntegerField()


class CashReconciliationSerializer(serializers.Serializer):
    hospital_center_id = serializers.UUIDField()
    hospital_center_name = serializers.CharField()
    last_handover_date = serializers.DateTimeField(allow_null=True)
    last_handover_remaining_amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    total_cash_receipts_since = serializers.DecimalField(max_digits=14, decimal_places=2)
    payment_count = serializers.IntegerField()
    payment_details = ReceiptsByReferenceSerializer(many=True)


class MovementWindowSerializer(serializers.Serializer):
    date_from = serializers.DateField(required=False)
    date_to = serializers.DateField(required=False)
