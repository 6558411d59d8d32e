"""
Tests — Care API: role gate, episode creation, care services and the
product consumption endpoint.

@file care/tests/test_views.py
"""

from decimal import Decimal

import pytest
from django.urls import reverse
from rest_framework import status

from tests.factories import (
    CareEpisodeFactory,
    CareServiceFactory,
    CareServiceProductFactory,
    CareTypeFactory,
    CashierFactory,
    DiagnosisFactory,
    MedicalStaffFactory,
    ProductFactory,
    StockInventoryFactory,
)


pytestmark = pytest.mark.django_db


class TestEpisodeEndpoints:

    def test_cashier_cannot_create_episode(self, api_client):
        api_client.force_authenticate(user=CashierFactory())
        diagnosis = DiagnosisFactory()
        response = api_client.post(
            reverse('api-v1:care:episode-list'),
            {
                'patient_id': str(diagnosis.patient_id),
                'diagnosis_id': str(diagnosis.pk),
                'center_id': str(diagnosis.hospital_center_id),
                'primary_caregiver_id': str(MedicalStaffFactory().pk),
            },
            format='json',
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_medical_staff_creates_episode(self, authenticated_client):
        diagnosis = DiagnosisFactory()
        response = authenticated_client.post(
            reverse('api-v1:care:episode-list'),
            {
                'patient_id': str(diagnosis.patient_id),
                'diagnosis_id': str(diagnosis.pk),
                'center_id': str(diagnosis.hospital_center_id),
                'primary_caregiver_id': str(MedicalStaffFactory().pk),
            },
            format='json',
        )
        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()['data']['status'] == 'ACTIVE'

    def test_interrupt_without_reason_rejected(self, authenticated_client):
        episode = CareEpisodeFactory()
        response = authenticated_client.post(
            reverse('api-v1:care:episode-interrupt', args=[episode.pk]), {}, format='json',
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_complete(self, authenticated_client):
        episode = CareEpisodeFactory()
        response = authenticated_client.post(
            reverse('api-v1:care:episode-complete', args=[episode.pk]), {}, format='json',
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()['data']['status'] == 'COMPLETED'


class TestCareServiceEndpoints:

    def test_add_service_with_products(self, authenticated_client):
        episode = CareEpisodeFactory()
        product = ProductFactory(selling_price=Decimal('250'))
        StockInventoryFactory(product=product, hospital_center=episode.hospital_center)
        response = authenticated_client.post(
            reverse('api-v1:care:episode-services', args=[episode.pk]),
            {
                'care_type_id': str(CareTypeFactory(base_price=Decimal('1000')).pk),
                'administered_by_id': str(MedicalStaffFactory().pk),
                'products': [{'product_id': str(product.pk), 'quantity': '2'}],
            },
            format='json',
        )
        assert response.status_code == status.HTTP_201_CREATED
        assert Decimal(response.json()['data']['cost']) == Decimal('1500')

        listing = authenticated_client.get(reverse('api-v1:care:episode-services', args=[episode.pk]))
        assert listing.status_code == status.HTTP_200_OK
        assert len(listing.json()['data']) == 1

    def test_shortage_returns_conflict_with_detail(self, authenticated_client):
        episode = CareEpisodeFactory()
        product = ProductFactory()
        StockInventoryFactory(product=product, hospital_center=episode.hospital_center, current_quantity=Decimal('1'))
        response = authenticated_client.post(
            reverse('api-v1:care:episode-services', args=[episode.pk]),
            {
                'care_type_id': str(CareTypeFactory().pk),
                'administered_by_id': str(MedicalStaffFactory().pk),
                'products': [{'product_id': str(product.pk), 'quantity': '3'}],
            },
            format='json',
        )
        assert response.status_code == status.HTTP_409_CONFLICT
        body = response.json()
        assert body['code'] == 'STOCK_SHORTAGE'
        assert body['errors']['shortages'][0]['product_id'] == str(product.pk)

    def test_consume_products(self, authenticated_client):
        service = CareServiceFactory()
        line = CareServiceProductFactory(care_service=service, quantity_used=Decimal('2'))
        StockInventoryFactory(product=line.product, hospital_center=service.episode.hospital_center)
        response = authenticated_client.post(
            reverse('api-v1:care:care-service-consume-products', args=[service.pk]), {}, format='json',
        )
        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()['data']
        assert data['source_type'] == 'CareService'
        assert data['movements'][0]['new_stock_level'] == 98.0
