"""
HospiTrack-HMS — Root conftest for pytest

Shared fixtures available to all test modules.

@file conftest.py
"""

import pytest
from rest_framework.test import APIClient

from tests.factories import (
    CashierFactory,
    HospitalCenterFactory,
    MedicalStaffFactory,
    SuperuserFactory,
    UserFactory,
)


@pytest.fixture
def api_client():
    """Unauthenticated DRF test client."""
    return APIClient()


@pytest.fixture
def user(db):
    """Active medical staff member with default password TestPass2026!"""
    return UserFactory()


@pytest.fixture
def admin_user(db):
    """Superuser with default password TestPass2026!"""
    return SuperuserFactory()


@pytest.fixture
def medical_staff(db):
    return MedicalStaffFactory()


@pytest.fixture
def cashier(db):
    return CashierFactory()


@pytest.fixture
def center(db):
    return HospitalCenterFactory()


@pytest.fixture
def authenticated_client(api_client, user):
    """API client authenticated as a regular user."""
    api_client.force_authenticate(user=user)
    return api_client


@pytest.fixture
def admin_client(api_client, admin_user):
    """API client authenticated as a superuser."""
    api_client.force_authenticate(user=admin_user)
    return api_client


@pytest.fixture
def cashier_client(api_client, cashier):
    """API client authenticated as a cashier."""
    api_client.force_authenticate(user=cashier)
    return api_client
