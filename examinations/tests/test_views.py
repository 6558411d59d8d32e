"""
Tests — Examination API.

@file examinations/tests/test_views.py
"""

from decimal import Decimal

import pytest
from django.urls import reverse
from rest_framework import status

from tests.factories import ExaminationFactory, ExaminationTypeFactory, HospitalCenterFactory, PatientFactory


pytestmark = pytest.mark.django_db


class TestExaminationEndpoints:

    def test_request_examination(self, authenticated_client):
        response = authenticated_client.post(
            reverse('api-v1:examinations:examination-list'),
            {
                'patient_id': str(PatientFactory().pk),
                'examination_type_id': str(ExaminationTypeFactory(base_price=Decimal('3000')).pk),
                'center_id': str(HospitalCenterFactory().pk),
            },
            format='json',
        )
        assert response.status_code == status.HTTP_201_CREATED
        assert Decimal(response.json()['data']['final_price']) == Decimal('3000')

    def test_cancel_requires_reason(self, authenticated_client):
        examination = ExaminationFactory()
        response = authenticated_client.post(
            reverse('api-v1:examinations:examination-cancel', args=[examination.pk]), {}, format='json',
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_result_on_requested_examination_rejected(self, authenticated_client):
        examination = ExaminationFactory()
        response = authenticated_client.post(
            reverse('api-v1:examinations:examination-result', args=[examination.pk]),
            {'result_data': 'RAS'},
            format='json',
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()['code'] == 'BUSINESS_RULE_VIOLATION'

    def test_types_listed(self, authenticated_client):
        ExaminationTypeFactory()
        response = authenticated_client.get(reverse('api-v1:examinations:examination-type-list'))
        assert response.status_code == status.HTTP_200_OK
