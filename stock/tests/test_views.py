"""
Tests — Stock API: availability check, admin-only adjustment, alerts
and the movement ledger.

@file stock/tests/test_views.py
"""

from decimal import Decimal

import pytest
from django.urls import reverse
from rest_framework import status

from stock.models import StockMovement
from tests.factories import HospitalCenterFactory, ProductFactory, StockInventoryFactory


pytestmark = pytest.mark.django_db


class TestAvailabilityEndpoint:

    def test_reports_shortage(self, authenticated_client):
        row = StockInventoryFactory(current_quantity=Decimal('2'))
        response = authenticated_client.post(
            reverse('api-v1:stock:inventory-availability'),
            {
                'hospital_center': str(row.hospital_center_id),
                'items': [{'product_id': str(row.product_id), 'quantity': '5'}],
            },
            format='json',
        )
        assert response.status_code == status.HTTP_200_OK
        data = response.json()['data']
        assert data['is_available'] is False
        assert data['shortages'][0]['available_quantity'] == 2.0

    def test_empty_items_rejected(self, authenticated_client):
        response = authenticated_client.post(
            reverse('api-v1:stock:inventory-availability'),
            {'hospital_center': str(HospitalCenterFactory().pk), 'items': []},
            format='json',
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST


class TestAdjustEndpoint:

    def _payload(self, product, center, delta='10'):
        return {
            'product_id': str(product.pk),
            'hospital_center': str(center.pk),
            'quantity_delta': delta,
            'reason': 'Réception fournisseur',
        }

    def test_medical_staff_forbidden(self, authenticated_client):
        response = authenticated_client.post(
            reverse('api-v1:stock:inventory-adjust'),
            self._payload(ProductFactory(), HospitalCenterFactory()),
            format='json',
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_admin_adjusts(self, admin_client):
        response = admin_client.post(
            reverse('api-v1:stock:inventory-adjust'),
            self._payload(ProductFactory(), HospitalCenterFactory()),
            format='json',
        )
        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()['data']['movement_type'] == StockMovement.MovementType.INITIAL

    def test_negative_balance_conflict(self, admin_client):
        row = StockInventoryFactory(current_quantity=Decimal('1'))
        response = admin_client.post(
            reverse('api-v1:stock:inventory-adjust'),
            self._payload(row.product, row.hospital_center, delta='-5'),
            format='json',
        )
        assert response.status_code == status.HTTP_409_CONFLICT


class TestAlertsEndpoint:

    def test_alerts_for_center(self, authenticated_client):
        row = StockInventoryFactory(current_quantity=Decimal('0'))
        StockInventoryFactory(current_quantity=Decimal('0'))
        response = authenticated_client.get(
            reverse('api-v1:stock:inventory-alerts'),
            {'hospital_center': str(row.hospital_center_id)},
        )
        assert response.status_code == status.HTTP_200_OK
        data = response.json()['data']
        assert len(data) == 1
        assert data[0]['level'] == 'OUT_OF_STOCK'


class TestMovementLedger:

    def test_filter_by_reference(self, admin_client):
        row = StockInventoryFactory(current_quantity=Decimal('5'))
        admin_client.post(
            reverse('api-v1:stock:inventory-adjust'),
            {
                'product_id': str(row.product_id),
                'hospital_center': str(row.hospital_center_id),
                'quantity_delta': '3',
                'reason': 'Correction',
            },
            format='json',
        )
        response = admin_client.get(
            reverse('api-v1:stock:movement-list'), {'reference_id': str(row.pk)},
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()['meta']['count'] == 1


class TestThresholdsEndpoint:

    def test_partial_update_keeps_other_threshold(self, admin_client):
        row = StockInventoryFactory(minimum_threshold=Decimal('5'), maximum_threshold=Decimal('100'))
        response = admin_client.post(
            reverse('api-v1:stock:inventory-thresholds', args=[row.pk]),
            {'minimum_threshold': '20'},
            format='json',
        )
        assert response.status_code == status.HTTP_200_OK
        data = response.json()['data']
        assert data['minimum_threshold'] == 20.0
        assert data['maximum_threshold'] == 100.0
        row.refresh_from_db()
        assert row.maximum_threshold == Decimal('100')
