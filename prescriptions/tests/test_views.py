"""
Tests — Prescription API.

@file prescriptions/tests/test_views.py
"""

from decimal import Decimal

import pytest
from django.urls import reverse
from rest_framework import status

from tests.factories import (
    CashierFactory,
    PrescriptionFactory,
    PrescriptionItemFactory,
    StockInventoryFactory,
)


pytestmark = pytest.mark.django_db


class TestPrescriptionEndpoints:

    def test_dispense(self, authenticated_client):
        item = PrescriptionItemFactory(quantity=Decimal('3'))
        StockInventoryFactory(product=item.product, hospital_center=item.prescription.hospital_center)
        response = authenticated_client.post(
            reverse('api-v1:prescriptions:prescription-dispense', args=[item.prescription_id]),
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()['data']['movements'][0]['quantity'] == -3.0

    def test_dispense_shortage_conflict(self, authenticated_client):
        item = PrescriptionItemFactory(quantity=Decimal('300'))
        StockInventoryFactory(product=item.product, hospital_center=item.prescription.hospital_center)
        response = authenticated_client.post(
            reverse('api-v1:prescriptions:prescription-dispense', args=[item.prescription_id]),
        )
        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()['code'] == 'STOCK_SHORTAGE'

    def test_cashier_cannot_dispense(self, api_client):
        api_client.force_authenticate(user=CashierFactory())
        prescription = PrescriptionFactory()
        response = api_client.post(
            reverse('api-v1:prescriptions:prescription-dispense', args=[prescription.pk]),
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_delete_not_allowed(self, admin_client):
        prescription = PrescriptionFactory()
        response = admin_client.delete(
            reverse('api-v1:prescriptions:prescription-detail', args=[prescription.pk]),
        )
        assert response.status_code == status.HTTP_405_METHOD_NOT_ALLOWED

    def test_availability(self, authenticated_client):
        item = PrescriptionItemFactory(quantity=Decimal('3'))
        response = authenticated_client.get(
            reverse('api-v1:prescriptions:prescription-availability', args=[item.prescription_id]),
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()['data']['is_available'] is False
