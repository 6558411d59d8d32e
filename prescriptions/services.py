"""
Prescriptions — Service Layer

Prescriptions are editable while PENDING. dispense_prescription() takes
every item from the centre's stock and flips the status to DISPENSED in
one transaction; a shortage leaves both untouched and is audited once
the transaction has rolled back.

@file prescriptions/services.py
"""

import logging
from decimal import Decimal
from uuid import UUID

from django.db import transaction

from care.models import CareEpisode
from catalog.models import Product
from centers.models import HospitalCenter
from core import clock
from core.constants import (
    AUDIT_ACTION_ADD_ITEM,
    AUDIT_ACTION_CREATE,
    AUDIT_ACTION_DISPENSE,
    AUDIT_ACTION_REMOVE_ITEM,
    AUDIT_ACTION_UPDATE,
)
from core.exceptions import (
    BusinessRuleViolation,
    InvalidStateTransition,
    ResourceNotFoundError,
    StockShortageError,
    guard_write,
)
from core.services import AuditService
from patients.models import Diagnosis, Patient
from stock.models import StockMovement
from stock.services import AvailabilityReport, StockDemand, StockService, StockTrackingResult

from .models import Prescription, PrescriptionItem

logger = logging.getLogger('hospitrack')

ITEM_FIELDS = ('dosage', 'frequency', 'duration', 'instructions')


def _real_user(actor):
    return actor if getattr(actor, 'is_authenticated', False) else None


def _lock_prescription(prescription_id) -> Prescription:
    try:
        return Prescription.objects.select_for_update().get(pk=prescription_id)
    except Prescription.DoesNotExist:
        raise ResourceNotFoundError(detail='Prescription introuvable.')


def _resolve_diagnosis(diagnosis_id, patient_id):
    if not diagnosis_id:
        return None
    try:
        diagnosis = Diagnosis.objects.get(pk=diagnosis_id)
    except Diagnosis.DoesNotExist:
        raise ResourceNotFoundError(detail='Diagnostic introuvable.')
    if diagnosis.patient_id != patient_id:
        raise BusinessRuleViolation(detail="Le diagnostic n'appartient pas à ce patient.")
    return diagnosis


def _resolve_episode(episode_id, patient_id):
    if not episode_id:
        return None
    try:
        episode = CareEpisode.objects.get(pk=episode_id)
    except CareEpisode.DoesNotExist:
        raise ResourceNotFoundError(detail='Épisode de soins introuvable.')
    if episode.patient_id != patient_id:
        raise BusinessRuleViolation(detail="L'épisode de soins n'appartient pas à ce patient.")
    return episode


def _item_values(item: dict) -> dict:
    return {key: (item.get(key) or '').strip() for key in ITEM_FIELDS}


class PrescriptionService:
    """Prescription lifecycle and dispensation against stock."""

    @staticmethod
    @guard_write('PrescriptionService.create_prescription')
    @transaction.atomic
    def create_prescription(
        *,
        patient_id,
        center_id,
        items,
        diagnosis_id=None,
        care_episode_id=None,
        prescription_date=None,
        instructions: str = '',
        actor=None,
    ) -> Prescription:
        """
        `items` are dicts with product_id, quantity and optional dosage,
        frequency, duration, instructions. Unknown products are skipped;
        at least one item must remain.
        """
        try:
            patient = Patient.objects.get(pk=patient_id)
        except Patient.DoesNotExist:
            raise ResourceNotFoundError(detail='Patient introuvable.')
        try:
            center = HospitalCenter.objects.get(pk=center_id)
        except HospitalCenter.DoesNotExist:
            raise ResourceNotFoundError(detail='Centre hospitalier introuvable.')
        diagnosis = _resolve_diagnosis(diagnosis_id, patient.pk)
        episode = _resolve_episode(care_episode_id, patient.pk)

        products = Product.objects.in_bulk([item['product_id'] for item in items])
        lines = []
        for item in items:
            product = products.get(UUID(str(item['product_id'])))
            if product is None:
                logger.warning('PrescriptionService.unknown_product product=%s patient=%s', item['product_id'], patient.pk)
                continue
            quantity = Decimal(str(item['quantity']))
            if quantity <= 0:
                raise BusinessRuleViolation(detail='La quantité prescrite doit être positive.')
            lines.append((product, quantity, _item_values(item)))
        if not lines:
            raise BusinessRuleViolation(detail='Une prescription doit contenir au moins un produit.')

        prescription = Prescription.objects.create(
            patient=patient,
            diagnosis=diagnosis,
            care_episode=episode,
            hospital_center=center,
            prescribed_by=_real_user(actor),
            prescription_date=prescription_date or clock.now(),
            instructions=(instructions or '').strip(),
            status=Prescription.StatusChoices.PENDING,
            created_by=_real_user(actor),
        )
        PrescriptionItem.objects.bulk_create([
            PrescriptionItem(
                prescription=prescription,
                product=product,
                quantity=quantity,
                created_by=_real_user(actor),
                **values,
            )
            for product, quantity, values in lines
        ])

        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_CREATE,
            model_name='Prescription',
            object_id=str(prescription.pk),
            new_values={
                'patient_id': str(patient.pk),
                'prescription_date': prescription.prescription_date.isoformat(),
                'items_count': len(lines),
            },
            description=f"Création d'une nouvelle prescription pour le patient {patient.full_name}",
        )
        logger.info('PrescriptionService.prescription_created %s items=%d', prescription.pk, len(lines))
        return prescription

    @staticmethod
    @guard_write('PrescriptionService.update_prescription')
    @transaction.atomic
    def update_prescription(*, prescription_id, actor=None, **fields) -> Prescription:
        prescription = _lock_prescription(prescription_id)
        if prescription.status == Prescription.StatusChoices.DISPENSED:
            raise InvalidStateTransition(detail='Impossible de modifier une prescription déjà dispensée.')

        old_values = {
            'diagnosis_id': str(prescription.diagnosis_id) if prescription.diagnosis_id else None,
            'care_episode_id': str(prescription.care_episode_id) if prescription.care_episode_id else None,
            'instructions': prescription.instructions,
        }
        if 'diagnosis_id' in fields:
            prescription.diagnosis = _resolve_diagnosis(fields['diagnosis_id'], prescription.patient_id)
        if 'care_episode_id' in fields:
            prescription.care_episode = _resolve_episode(fields['care_episode_id'], prescription.patient_id)
        if 'instructions' in fields:
            prescription.instructions = (fields['instructions'] or '').strip()
        prescription.updated_by = _real_user(actor)
        prescription.save()

        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_UPDATE,
            model_name='Prescription',
            object_id=str(prescription.pk),
            old_values=old_values,
            new_values={
                'diagnosis_id': str(prescription.diagnosis_id) if prescription.diagnosis_id else None,
                'care_episode_id': str(prescription.care_episode_id) if prescription.care_episode_id else None,
                'instructions': prescription.instructions,
            },
            description=f'Modification de la prescription {prescription.pk}',
        )
        return prescription

    @staticmethod
    @guard_write('PrescriptionService.add_item')
    @transaction.atomic
    def add_item(*, prescription_id, product_id, quantity, actor=None, **details) -> PrescriptionItem:
        prescription = _lock_prescription(prescription_id)
        if prescription.status == Prescription.StatusChoices.DISPENSED:
            raise InvalidStateTransition(
                detail="Impossible d'ajouter un produit à une prescription déjà dispensée.",
            )
        try:
            product = Product.objects.get(pk=product_id)
        except Product.DoesNotExist:
            raise ResourceNotFoundError(detail='Produit introuvable.')
        quantity = Decimal(str(quantity))
        if quantity <= 0:
            raise BusinessRuleViolation(detail='La quantité prescrite doit être positive.')

        item = PrescriptionItem.objects.create(
            prescription=prescription,
            product=product,
            quantity=quantity,
            created_by=_real_user(actor),
            **_item_values(details),
        )
        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_ADD_ITEM,
            model_name='PrescriptionItem',
            object_id=str(item.pk),
            new_values={'prescription_id': str(prescription.pk), 'product_id': str(product.pk), 'quantity': str(quantity)},
            description=f'Ajout de {product.name} à la prescription {prescription.pk}',
        )
        return item

    @staticmethod
    @guard_write('PrescriptionService.remove_item')
    @transaction.atomic
    def remove_item(*, item_id, actor=None) -> None:
        try:
            item = PrescriptionItem.objects.select_related('product').get(pk=item_id)
        except PrescriptionItem.DoesNotExist:
            raise ResourceNotFoundError(detail='Item de prescription introuvable.')
        prescription = _lock_prescription(item.prescription_id)
        if prescription.status == Prescription.StatusChoices.DISPENSED:
            raise InvalidStateTransition(
                detail="Impossible de supprimer un produit d'une prescription déjà dispensée.",
            )

        old_values = {
            'prescription_id': str(prescription.pk),
            'product_id': str(item.product_id),
            'quantity': str(item.quantity),
        }
        item_pk = item.pk
        item.delete()
        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_REMOVE_ITEM,
            model_name='PrescriptionItem',
            object_id=str(item_pk),
            old_values=old_values,
            description=f'Retrait de {item.product.name} de la prescription {prescription.pk}',
        )

    @staticmethod
    def check_availability(*, prescription_id) -> AvailabilityReport:
        try:
            prescription = Prescription.objects.get(pk=prescription_id)
        except Prescription.DoesNotExist:
            raise ResourceNotFoundError(detail='Prescription introuvable.')
        demands = [
            StockDemand(product_id=item.product_id, quantity=item.quantity)
            for item in prescription.items.all()
        ]
        return StockService.check_availability(demands, prescription.hospital_center_id)

    @staticmethod
    @guard_write('PrescriptionService.dispense_prescription')
    def dispense_prescription(*, prescription_id, actor=None) -> StockTrackingResult:
        try:
            return PrescriptionService._dispense(prescription_id=prescription_id, actor=actor)
        except StockShortageError as exc:
            prescription = Prescription.objects.filter(pk=prescription_id).only('hospital_center_id').first()
            StockService.report_shortage(
                reference_type='Prescription',
                reference_id=prescription_id,
                center_id=prescription.hospital_center_id if prescription else None,
                shortages=exc.shortages,
                actor=actor,
            )
            raise

    @staticmethod
    @transaction.atomic
    def _dispense(*, prescription_id, actor=None) -> StockTrackingResult:
        prescription = _lock_prescription(prescription_id)
        if prescription.status != Prescription.StatusChoices.PENDING:
            raise InvalidStateTransition(
                detail=f"Impossible de dispenser une prescription en statut '{prescription.get_status_display()}'.",
            )
        patient = Patient.objects.get(pk=prescription.patient_id)
        center = HospitalCenter.objects.get(pk=prescription.hospital_center_id)

        demands = [
            StockDemand(product_id=item.product_id, quantity=item.quantity)
            for item in prescription.items.all()
        ]
        if not demands:
            raise BusinessRuleViolation(detail='La prescription ne contient aucun produit.')

        movements = StockService.decrement(
            demands=demands,
            center_id=center.pk,
            movement_type=StockMovement.MovementType.PRESCRIPTION,
            reference_type='Prescription',
            reference_id=prescription.pk,
            actor=actor,
            notes=f'Dispensation de la prescription pour {patient.full_name}',
        )

        prescription.status = Prescription.StatusChoices.DISPENSED
        prescription.dispensed_at = clock.now()
        prescription.updated_by = _real_user(actor)
        prescription.save(update_fields=['status', 'dispensed_at', 'updated_by', 'updated_at'])

        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_DISPENSE,
            model_name='Prescription',
            object_id=str(prescription.pk),
            old_values={'status': Prescription.StatusChoices.PENDING},
            new_values={'status': prescription.status, 'movements': len(movements)},
            description=f'Dispensation de la prescription {prescription.pk}',
        )
        logger.info(
            'PrescriptionService.prescription_dispensed %s center=%s lines=%d',
            prescription.pk, center.pk, len(movements),
        )
        return StockService.tracking_result(
            source_type='Prescription',
            source_id=prescription.pk,
            reference_prefix='PRESC',
            center=center,
            movements=movements,
        )
