"""
Centers — Serializers

Explicit field lists; no __all__.

@file centers/serializers.py
"""

from rest_framework import serializers

from .models import HospitalCenter


class HospitalCenterReadSerializer(serializers.ModelSerializer):
    class Meta:
        model = HospitalCenter
        fields = [
            'id', 'name', 'address', 'phone_number', 'email', 'is_active',
            'created_at', 'updated_at',
        ]
        read_only_fields = fields


class HospitalCenterMinimalSerializer(serializers.ModelSerializer):
    class Meta:
        model = HospitalCenter
        fields = ['id', 'name']
        read_only_fields = fields


class HospitalCenterWriteSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200)
    address = serializers.CharField(max_length=500, required=False, allow_blank=True)
    phone_number = serializers.CharField(max_length=20, required=False, allow_blank=True)
    email = serializers.EmailField(required=False, allow_blank=True)


class ActiveStatusSerializer(serializers.Serializer):
    is_active = serializers.BooleanField()
