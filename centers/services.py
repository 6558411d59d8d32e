"""
Centers — Service Layer

Hospital centre lifecycle: creation with a case-insensitive unique
name, updates, and activation toggling. Every write is audited.

@file centers/services.py
"""

import logging

from django.db import transaction
from django.db.models import QuerySet

from core.constants import AUDIT_ACTION_CREATE, AUDIT_ACTION_STATUS_CHANGE, AUDIT_ACTION_UPDATE
from core.exceptions import DuplicateResourceError, ResourceNotFoundError, guard_write
from core.services import AuditService

from .models import HospitalCenter

logger = logging.getLogger('hospitrack')

EDITABLE_FIELDS = ('name', 'address', 'phone_number', 'email')


def _clean_fields(fields: dict) -> dict:
    cleaned = {}
    for key in EDITABLE_FIELDS:
        if key not in fields:
            continue
        value = (fields[key] or '').strip()
        if key == 'email':
            value = value.lower()
        cleaned[key] = value
    return cleaned


def _assert_unique_name(name: str, exclude_id=None) -> None:
    qs = HospitalCenter.objects.filter(name__iexact=name)
    if exclude_id is not None:
        qs = qs.exclude(pk=exclude_id)
    if qs.exists():
        raise DuplicateResourceError(detail='Un centre avec ce nom existe déjà.')


class HospitalCenterService:
    """Create, update and (de)activate hospital centres."""

    @staticmethod
    def get_center(center_id) -> HospitalCenter:
        try:
            return HospitalCenter.objects.get(pk=center_id)
        except HospitalCenter.DoesNotExist:
            raise ResourceNotFoundError(detail='Centre hospitalier introuvable.')

    @staticmethod
    def active_centers() -> QuerySet:
        return HospitalCenter.objects.filter(is_active=True).order_by('name')

    @staticmethod
    @guard_write('HospitalCenterService.create_center')
    @transaction.atomic
    def create_center(*, actor=None, **fields) -> HospitalCenter:
        data = _clean_fields(fields)
        _assert_unique_name(data.get('name', ''))

        center = HospitalCenter(**data)
        center.is_active = fields.get('is_active', True)
        center.created_by = actor
        center.full_clean()
        center.save()

        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_CREATE,
            model_name='HospitalCenter',
            object_id=str(center.pk),
            new_values=AuditService.snapshot(center),
            description=f'Création du centre {center.name}',
        )
        logger.info('HospitalCenterService.center_created %s (%s)', center.pk, center.name)
        return center

    @staticmethod
    @guard_write('HospitalCenterService.update_center')
    @transaction.atomic
    def update_center(*, center_id, actor=None, **fields) -> HospitalCenter:
        try:
            center = HospitalCenter.objects.select_for_update().get(pk=center_id)
        except HospitalCenter.DoesNotExist:
            raise ResourceNotFoundError(detail='Centre hospitalier introuvable.')

        data = _clean_fields(fields)
        if 'name' in data:
            _assert_unique_name(data['name'], exclude_id=center.pk)

        old_snapshot = AuditService.snapshot(center)
        for field, value in data.items():
            setattr(center, field, value)
        center.updated_by = actor
        center.full_clean()
        center.save()

        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_UPDATE,
            model_name='HospitalCenter',
            object_id=str(center.pk),
            old_values=old_snapshot,
            new_values=AuditService.snapshot(center),
        )
        logger.info('HospitalCenterService.center_updated %s', center.pk)
        return center

    @staticmethod
    @guard_write('HospitalCenterService.set_active_status')
    @transaction.atomic
    def set_active_status(*, center_id, is_active: bool, actor=None) -> HospitalCenter:
        """Activate or deactivate a centre; unchanged status is a no-op."""
        try:
            center = HospitalCenter.objects.select_for_update().get(pk=center_id)
        except HospitalCenter.DoesNotExist:
            raise ResourceNotFoundError(detail='Centre hospitalier introuvable.')

        if center.is_active == is_active:
            return center

        center.is_active = is_active
        center.updated_by = actor
        center.save(update_fields=['is_active', 'updated_by', 'updated_at'])

        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_STATUS_CHANGE,
            model_name='HospitalCenter',
            object_id=str(center.pk),
            old_values={'is_active': not is_active},
            new_values={'is_active': is_active},
        )
        logger.info('HospitalCenterService.center_status_changed %s active=%s', center.pk, is_active)
        return center
