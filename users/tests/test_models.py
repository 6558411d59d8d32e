"""
Users — Model Tests

Tests for User creation, naming and role checks.

@file users/tests/test_models.py
"""

import pytest

from tests.factories import UserFactory
from users.models import User


@pytest.mark.django_db
class TestUserModel:
    def test_create_user_normalises_email(self):
        user = User.objects.create_user(email='Jean.Mbarga@Hopital.CM', password='Test2026!!')
        assert user.email == 'jean.mbarga@hopital.cm'
        assert user.role == User.RoleChoices.MEDICAL_STAFF

    def test_create_user_requires_email(self):
        with pytest.raises(ValueError):
            User.objects.create_user(email='', password='Test2026!!')

    def test_superuser_creation(self):
        user = User.objects.create_superuser(email='root@hopital.cm', password='Super2026!!')
        assert user.is_staff is True
        assert user.is_superuser is True
        assert user.role == User.RoleChoices.SUPER_ADMIN

    def test_full_name(self):
        user = UserFactory(first_name='Jean', last_name='Mbarga')
        assert user.get_full_name() == 'Jean Mbarga'

    def test_full_name_fallback_to_email(self):
        user = UserFactory(first_name='', last_name='')
        assert user.get_full_name() == user.email

    def test_uuid_pk(self):
        user = UserFactory()
        assert len(str(user.pk)) == 36

    def test_has_role(self):
        cashier = UserFactory(role=User.RoleChoices.CASHIER)
        assert cashier.has_role(User.RoleChoices.CASHIER)
        assert not cashier.has_role(User.RoleChoices.MEDICAL_STAFF, User.RoleChoices.SUPER_ADMIN)

    def test_superuser_has_every_role(self):
        user = UserFactory(role=User.RoleChoices.CASHIER, is_superuser=True)
        assert user.has_role(User.RoleChoices.MEDICAL_STAFF)
