"""
Care — Service Layer

Care episode lifecycle and the care services delivered within it.

Adding a service raises the episode's total cost and remaining balance
by the act's cost plus the products used at their selling price. The
products leave the centre's stock through StockService.decrement in
the same transaction; a shortage rolls everything back and is audited
after the rollback.

@file care/services.py
"""

import logging
from decimal import Decimal
from uuid import UUID

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import QuerySet

from catalog.models import Product
from centers.models import HospitalCenter
from core import clock
from core.constants import AUDIT_ACTION_CREATE, AUDIT_ACTION_STATUS_CHANGE, AUDIT_ACTION_UPDATE
from core.exceptions import (
    BusinessRuleViolation,
    DuplicateResourceError,
    InvalidStateTransition,
    ResourceNotFoundError,
    StockShortageError,
    guard_write,
)
from core.services import AuditService
from patients.models import Diagnosis, Patient
from stock.models import StockMovement
from stock.services import StockDemand, StockService, StockTrackingResult

from .models import CareEpisode, CareService, CareServiceProduct, CareType

logger = logging.getLogger('hospitrack')

EPISODE_STATUS_TRANSITIONS = {
    CareEpisode.StatusChoices.ACTIVE: {
        CareEpisode.StatusChoices.COMPLETED,
        CareEpisode.StatusChoices.INTERRUPTED,
    },
    CareEpisode.StatusChoices.COMPLETED: set(),
    CareEpisode.StatusChoices.INTERRUPTED: set(),
}


def _lock_episode(episode_id) -> CareEpisode:
    try:
        return CareEpisode.objects.select_for_update().get(pk=episode_id)
    except CareEpisode.DoesNotExist:
        raise ResourceNotFoundError(detail='Épisode de soins introuvable.')


def _get_staff(user_id):
    User = get_user_model()
    try:
        return User.objects.active().get(pk=user_id)
    except User.DoesNotExist:
        raise ResourceNotFoundError(detail='Soignant introuvable.')


def _transition(episode: CareEpisode, new_status: str, message: str) -> None:
    if new_status not in EPISODE_STATUS_TRANSITIONS.get(episode.status, set()):
        raise InvalidStateTransition(detail=message)
    episode.status = new_status


def _consume_products(care_service: CareService, episode: CareEpisode, actor):
    demands = [
        StockDemand(product_id=line.product_id, quantity=line.quantity_used)
        for line in care_service.products.all()
    ]
    movements = StockService.decrement(
        demands=demands,
        center_id=episode.hospital_center_id,
        movement_type=StockMovement.MovementType.CARE,
        reference_type='CareService',
        reference_id=care_service.pk,
        actor=actor,
        notes=f'Utilisé pour le service de soins #{care_service.pk}',
    )
    care_service.stock_consumed_at = clock.now()
    care_service.save(update_fields=['stock_consumed_at', 'updated_at'])
    return movements


class CareEpisodeService:
    """Episodes and the care services recorded against them."""

    @staticmethod
    def get_episode(episode_id) -> CareEpisode:
        try:
            return CareEpisode.objects.select_related(
                'patient', 'diagnosis', 'hospital_center', 'primary_caregiver',
            ).get(pk=episode_id)
        except CareEpisode.DoesNotExist:
            raise ResourceNotFoundError(detail='Épisode de soins introuvable.')

    @staticmethod
    def patient_episodes(patient_id) -> QuerySet:
        return (
            CareEpisode.objects
            .filter(patient_id=patient_id)
            .select_related('diagnosis', 'hospital_center', 'primary_caregiver')
            .order_by('-episode_start_date')
        )

    @staticmethod
    @guard_write('CareEpisodeService.create_episode')
    @transaction.atomic
    def create_episode(
        *,
        patient_id,
        diagnosis_id,
        center_id,
        primary_caregiver_id,
        episode_start_date=None,
        actor=None,
    ) -> CareEpisode:
        try:
            patient = Patient.objects.get(pk=patient_id)
        except Patient.DoesNotExist:
            raise ResourceNotFoundError(detail='Patient introuvable.')
        try:
            diagnosis = Diagnosis.objects.get(pk=diagnosis_id, patient_id=patient.pk)
        except Diagnosis.DoesNotExist:
            raise ResourceNotFoundError(detail='Diagnostic introuvable pour ce patient.')
        try:
            center = HospitalCenter.objects.get(pk=center_id)
        except HospitalCenter.DoesNotExist:
            raise ResourceNotFoundError(detail='Centre hospitalier introuvable.')
        caregiver = _get_staff(primary_caregiver_id)

        duplicate = CareEpisode.objects.filter(
            patient=patient,
            diagnosis=diagnosis,
            status=CareEpisode.StatusChoices.ACTIVE,
        ).exists()
        if duplicate:
            raise DuplicateResourceError(
                detail='Un épisode de soins actif existe déjà pour ce patient avec ce diagnostic.',
            )

        episode = CareEpisode.objects.create(
            patient=patient,
            diagnosis=diagnosis,
            hospital_center=center,
            primary_caregiver=caregiver,
            episode_start_date=episode_start_date or clock.now(),
            status=CareEpisode.StatusChoices.ACTIVE,
            created_by=actor if getattr(actor, 'is_authenticated', False) else None,
        )
        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_CREATE,
            model_name='CareEpisode',
            object_id=str(episode.pk),
            new_values=AuditService.snapshot(episode),
            description=f"Création d'un nouvel épisode de soins pour le patient {patient.full_name}",
        )
        logger.info('CareEpisodeService.episode_created %s patient=%s center=%s', episode.pk, patient.pk, center.pk)
        return episode

    @staticmethod
    @guard_write('CareEpisodeService.update_episode')
    @transaction.atomic
    def update_episode(*, episode_id, actor=None, **fields) -> CareEpisode:
        """Change diagnosis, caregiver or start date of an ACTIVE episode."""
        episode = _lock_episode(episode_id)
        if episode.status != CareEpisode.StatusChoices.ACTIVE:
            raise BusinessRuleViolation(
                detail='Impossible de modifier un épisode de soins terminé ou interrompu.',
            )

        old_snapshot = AuditService.snapshot(episode)
        if fields.get('diagnosis_id'):
            if not Diagnosis.objects.filter(pk=fields['diagnosis_id'], patient_id=episode.patient_id).exists():
                raise ResourceNotFoundError(detail='Diagnostic introuvable pour ce patient.')
            episode.diagnosis_id = fields['diagnosis_id']
        if fields.get('primary_caregiver_id'):
            episode.primary_caregiver = _get_staff(fields['primary_caregiver_id'])
        if fields.get('episode_start_date'):
            episode.episode_start_date = fields['episode_start_date']
        if getattr(actor, 'is_authenticated', False):
            episode.updated_by = actor
        episode.save()

        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_UPDATE,
            model_name='CareEpisode',
            object_id=str(episode.pk),
            old_values=old_snapshot,
            new_values=AuditService.snapshot(episode),
            description=f"Modification de l'épisode de soins #{episode.pk}",
        )
        return episode

    @staticmethod
    @guard_write('CareEpisodeService.complete_episode')
    @transaction.atomic
    def complete_episode(*, episode_id, completion_date=None, actor=None) -> CareEpisode:
        episode = _lock_episode(episode_id)
        old_values = {'status': episode.status, 'episode_end_date': None}
        _transition(
            episode,
            CareEpisode.StatusChoices.COMPLETED,
            "Impossible de terminer un épisode de soins qui n'est pas actif.",
        )
        episode.episode_end_date = completion_date or clock.now()
        episode.save(update_fields=['status', 'episode_end_date', 'updated_at'])

        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_STATUS_CHANGE,
            model_name='CareEpisode',
            object_id=str(episode.pk),
            old_values=old_values,
            new_values={'status': episode.status, 'episode_end_date': episode.episode_end_date.isoformat()},
            description=f"Clôture de l'épisode de soins #{episode.pk}",
        )
        logger.info('CareEpisodeService.episode_completed %s', episode.pk)
        return episode

    @staticmethod
    @guard_write('CareEpisodeService.interrupt_episode')
    @transaction.atomic
    def interrupt_episode(*, episode_id, reason: str, interruption_date=None, actor=None) -> CareEpisode:
        reason = (reason or '').strip()
        if not reason:
            raise BusinessRuleViolation(detail="Le motif d'interruption est obligatoire.")

        episode = _lock_episode(episode_id)
        old_values = {'status': episode.status, 'interruption_reason': episode.interruption_reason}
        _transition(
            episode,
            CareEpisode.StatusChoices.INTERRUPTED,
            "Impossible d'interrompre un épisode de soins qui n'est pas actif.",
        )
        episode.episode_end_date = interruption_date or clock.now()
        episode.interruption_reason = reason
        episode.save(update_fields=['status', 'episode_end_date', 'interruption_reason', 'updated_at'])

        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_STATUS_CHANGE,
            model_name='CareEpisode',
            object_id=str(episode.pk),
            old_values=old_values,
            new_values={'status': episode.status, 'interruption_reason': reason},
            description=f"Interruption de l'épisode de soins #{episode.pk}",
        )
        logger.info('CareEpisodeService.episode_interrupted %s reason=%s', episode.pk, reason)
        return episode

    # -- Care services -------------------------------------------------------

    @staticmethod
    @guard_write('CareEpisodeService.add_care_service')
    def add_care_service(*, episode_id, actor=None, **kwargs) -> CareService:
        """
        Record a care act. `products` is a list of (product_id, quantity);
        unknown products are skipped. With consume_stock (default) the
        products are taken from stock now; a shortage refuses the act.
        """
        try:
            return CareEpisodeService._add_care_service(episode_id=episode_id, actor=actor, **kwargs)
        except StockShortageError as exc:
            episode = CareEpisode.objects.filter(pk=episode_id).only('hospital_center_id').first()
            StockService.report_shortage(
                reference_type='CareEpisode',
                reference_id=episode_id,
                center_id=episode.hospital_center_id if episode else None,
                shortages=exc.shortages,
                actor=actor,
            )
            raise

    @staticmethod
    @transaction.atomic
    def _add_care_service(
        *,
        episode_id,
        care_type_id,
        administered_by_id,
        service_date=None,
        duration=None,
        notes: str = '',
        cost=None,
        products=(),
        consume_stock: bool = True,
        actor=None,
    ) -> CareService:
        episode = _lock_episode(episode_id)
        if episode.status != CareEpisode.StatusChoices.ACTIVE:
            raise BusinessRuleViolation(
                detail="Impossible d'ajouter un service à un épisode terminé ou interrompu.",
            )
        try:
            care_type = CareType.objects.get(pk=care_type_id, is_active=True)
        except CareType.DoesNotExist:
            raise ResourceNotFoundError(detail='Type de soin introuvable.')
        staff = _get_staff(administered_by_id)

        act_cost = Decimal(str(cost)) if cost is not None else care_type.base_price
        if act_cost < 0:
            raise BusinessRuleViolation(detail='Le coût du soin ne peut pas être négatif.')

        lines = {}
        for product_id, quantity in products:
            quantity = Decimal(str(quantity))
            if quantity <= 0:
                continue
            product_id = UUID(str(product_id))
            lines[product_id] = lines.get(product_id, Decimal('0')) + quantity
        catalog = Product.objects.in_bulk(list(lines))

        care_service = CareService.objects.create(
            episode=episode,
            care_type=care_type,
            administered_by=staff,
            service_date=service_date or clock.now(),
            duration=duration,
            notes=notes or '',
            cost=act_cost,
        )
        products_cost = Decimal('0')
        for product_id, quantity in lines.items():
            product = catalog.get(product_id)
            if product is None:
                logger.warning(
                    'CareEpisodeService.unknown_product product=%s service=%s', product_id, care_service.pk,
                )
                continue
            line_cost = quantity * product.selling_price
            CareServiceProduct.objects.create(
                care_service=care_service,
                product=product,
                quantity_used=quantity,
                unit_cost=product.selling_price,
                total_cost=line_cost,
            )
            products_cost += line_cost

        total = act_cost + products_cost
        care_service.cost = total
        care_service.save(update_fields=['cost', 'updated_at'])

        episode.total_cost += total
        episode.remaining_balance += total
        episode.save(update_fields=['total_cost', 'remaining_balance', 'updated_at'])

        if consume_stock:
            _consume_products(care_service, episode, actor)

        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_CREATE,
            model_name='CareService',
            object_id=str(care_service.pk),
            new_values={
                'episode_id': str(episode.pk),
                'care_type_id': str(care_type.pk),
                'cost': str(total),
                'products_count': len(lines),
                'stock_consumed': consume_stock,
            },
            description=f"Ajout d'un service de soins à l'épisode #{episode.pk}",
        )
        logger.info(
            'CareEpisodeService.care_service_added %s episode=%s cost=%s', care_service.pk, episode.pk, total,
        )
        return care_service

    @staticmethod
    @guard_write('CareEpisodeService.record_care_service_product_usage')
    def record_care_service_product_usage(*, care_service_id, actor=None) -> StockTrackingResult:
        """Take the products of a recorded care service from stock, once."""
        try:
            return CareEpisodeService._record_product_usage(care_service_id=care_service_id, actor=actor)
        except StockShortageError as exc:
            service = CareService.objects.select_related('episode').filter(pk=care_service_id).first()
            StockService.report_shortage(
                reference_type='CareService',
                reference_id=care_service_id,
                center_id=service.episode.hospital_center_id if service else None,
                shortages=exc.shortages,
                actor=actor,
            )
            raise

    @staticmethod
    @transaction.atomic
    def _record_product_usage(*, care_service_id, actor=None) -> StockTrackingResult:
        try:
            care_service = CareService.objects.select_for_update().get(pk=care_service_id)
        except CareService.DoesNotExist:
            raise ResourceNotFoundError(detail='Service de soins introuvable.')
        episode = CareEpisode.objects.select_related('hospital_center').get(pk=care_service.episode_id)

        if episode.status != CareEpisode.StatusChoices.ACTIVE:
            raise InvalidStateTransition(
                detail="Impossible de consommer des produits pour un épisode terminé ou interrompu.",
            )
        if care_service.is_stock_consumed:
            raise BusinessRuleViolation(detail='Les produits de ce service ont déjà été sortis du stock.')

        movements = _consume_products(care_service, episode, actor)
        return StockService.tracking_result(
            source_type='CareService',
            source_id=care_service.pk,
            reference_prefix='CARE',
            center=episode.hospital_center,
            movements=movements,
        )
