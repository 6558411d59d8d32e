"""
Core — Model Tests

Tests for AuditLog and base model mixins.

@file core/tests/test_models.py
"""

import pytest

from core.models import AuditLog
from core.services import AuditService
from tests.factories import AuditLogFactory, HospitalCenterFactory, UserFactory


@pytest.mark.django_db
class TestAuditLog:
    def test_create_audit_log(self):
        user = UserFactory()
        log = AuditService.log(
            actor=user,
            action=AuditLog.ActionChoices.CREATE,
            model_name='TestModel',
            object_id='test-123',
            new_values={'key': 'value'},
        )
        assert log.pk is not None
        assert log.action == 'CREATE'
        assert log.model_name == 'TestModel'
        assert log.actor == user

    def test_audit_log_via_factory(self):
        log = AuditLogFactory()
        assert log.pk is not None
        assert log.timestamp is not None

    def test_snapshot_serialises_values(self):
        center = HospitalCenterFactory(name='Centre Nord')
        snapshot = AuditService.snapshot(center)
        assert snapshot['name'] == 'Centre Nord'
        assert isinstance(snapshot['id'], str)

    def test_anonymous_actor_is_stored_as_null(self):
        from django.contrib.auth.models import AnonymousUser

        log = AuditService.log(
            actor=AnonymousUser(),
            action=AuditLog.ActionChoices.UPDATE,
            model_name='HospitalCenter',
            object_id='abc',
        )
        assert log.actor is None


@pytest.mark.django_db
class TestBaseModel:
    def test_uuid_pk_and_timestamps(self):
        center = HospitalCenterFactory()
        assert len(str(center.pk)) == 36
        assert center.created_at is not None
        assert center.updated_at is not None

    def test_activatable_default(self):
        assert HospitalCenterFactory().is_active is True
