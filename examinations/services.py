"""
Examinations — Service Layer

Request, schedule, perform or cancel an examination, and attach its
result. Reporting a result on a scheduled examination completes it.

@file examinations/services.py
"""

import logging
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction

from care.models import CareEpisode
from centers.models import HospitalCenter
from core import clock
from core.constants import AUDIT_ACTION_CREATE, AUDIT_ACTION_STATUS_CHANGE
from core.exceptions import (
    BusinessRuleViolation,
    DuplicateResourceError,
    InvalidStateTransition,
    ResourceNotFoundError,
    guard_write,
)
from core.services import AuditService
from patients.models import Patient

from .models import Examination, ExaminationResult, ExaminationType

logger = logging.getLogger('hospitrack')

Status = Examination.StatusChoices

EXAMINATION_STATUS_TRANSITIONS = {
    Status.REQUESTED: {Status.SCHEDULED, Status.CANCELLED},
    Status.SCHEDULED: {Status.COMPLETED, Status.CANCELLED},
    Status.COMPLETED: set(),
    Status.CANCELLED: set(),
}


def _lock_examination(examination_id) -> Examination:
    try:
        return Examination.objects.select_for_update().get(pk=examination_id)
    except Examination.DoesNotExist:
        raise ResourceNotFoundError(detail='Examen introuvable.')


def _transition(examination: Examination, new_status: str, message: str) -> str:
    old_status = examination.status
    if new_status not in EXAMINATION_STATUS_TRANSITIONS.get(old_status, set()):
        raise InvalidStateTransition(detail=message)
    examination.status = new_status
    return old_status


def _append_note(current: str, addition: str) -> str:
    if not addition:
        return current
    return f'{current}\n{addition}' if current else addition


def _real_user(actor):
    return actor if getattr(actor, 'is_authenticated', False) else None


class ExaminationService:

    @staticmethod
    @guard_write('ExaminationService.create_examination')
    @transaction.atomic
    def create_examination(
        *,
        patient_id,
        examination_type_id,
        center_id,
        care_episode_id=None,
        request_date=None,
        scheduled_date=None,
        discount_amount=Decimal('0'),
        notes: str = '',
        actor=None,
    ) -> Examination:
        """Final price is the type's base price less the discount."""
        try:
            patient = Patient.objects.get(pk=patient_id)
        except Patient.DoesNotExist:
            raise ResourceNotFoundError(detail='Patient introuvable.')
        try:
            exam_type = ExaminationType.objects.get(pk=examination_type_id, is_active=True)
        except ExaminationType.DoesNotExist:
            raise ResourceNotFoundError(detail="Type d'examen introuvable.")
        try:
            center = HospitalCenter.objects.get(pk=center_id)
        except HospitalCenter.DoesNotExist:
            raise ResourceNotFoundError(detail='Centre hospitalier introuvable.')

        episode = None
        if care_episode_id:
            try:
                episode = CareEpisode.objects.get(pk=care_episode_id)
            except CareEpisode.DoesNotExist:
                raise ResourceNotFoundError(detail='Épisode de soins introuvable.')
            if episode.patient_id != patient.pk:
                raise BusinessRuleViolation(detail="L'épisode de soins n'appartient pas à ce patient.")

        discount = Decimal(str(discount_amount or 0))
        if discount < 0 or discount > exam_type.base_price:
            raise BusinessRuleViolation(detail='La remise doit être comprise entre 0 et le prix de base.')

        examination = Examination.objects.create(
            patient=patient,
            examination_type=exam_type,
            care_episode=episode,
            hospital_center=center,
            requested_by=_real_user(actor),
            request_date=request_date or clock.now(),
            scheduled_date=scheduled_date,
            status=Status.REQUESTED,
            final_price=exam_type.base_price - discount,
            discount_amount=discount,
            notes=notes or '',
            created_by=_real_user(actor),
        )
        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_CREATE,
            model_name='Examination',
            object_id=str(examination.pk),
            new_values={
                'patient_id': str(patient.pk),
                'examination_type_id': str(exam_type.pk),
                'final_price': str(examination.final_price),
            },
            description=f"Demande d'examen {exam_type.name} pour {patient.full_name}",
        )
        logger.info('ExaminationService.examination_requested %s type=%s', examination.pk, exam_type.pk)
        return examination

    @staticmethod
    @guard_write('ExaminationService.schedule_examination')
    @transaction.atomic
    def schedule_examination(*, examination_id, scheduled_date, performed_by_id, notes: str = '', actor=None):
        examination = _lock_examination(examination_id)
        User = get_user_model()
        try:
            performer = User.objects.active().get(pk=performed_by_id)
        except User.DoesNotExist:
            raise ResourceNotFoundError(detail='Exécutant introuvable.')

        old_status = _transition(
            examination, Status.SCHEDULED,
            "Impossible de planifier un examen qui n'est pas en attente.",
        )
        examination.scheduled_date = scheduled_date
        examination.performed_by = performer
        examination.notes = _append_note(examination.notes, (notes or '').strip())
        examination.updated_by = _real_user(actor)
        examination.save()

        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_STATUS_CHANGE,
            model_name='Examination',
            object_id=str(examination.pk),
            old_values={'status': old_status},
            new_values={
                'status': examination.status,
                'scheduled_date': scheduled_date.isoformat(),
                'performed_by': str(performer.pk),
            },
            description=f"Planification de l'examen #{examination.pk}",
        )
        return examination

    @staticmethod
    @guard_write('ExaminationService.complete_examination')
    @transaction.atomic
    def complete_examination(*, examination_id, performed_date=None, actor=None):
        examination = _lock_examination(examination_id)
        old_status = _transition(
            examination, Status.COMPLETED,
            "Impossible de terminer un examen qui n'est pas planifié.",
        )
        examination.performed_date = performed_date or clock.now()
        examination.updated_by = _real_user(actor)
        examination.save()

        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_STATUS_CHANGE,
            model_name='Examination',
            object_id=str(examination.pk),
            old_values={'status': old_status},
            new_values={'status': examination.status, 'performed_date': examination.performed_date.isoformat()},
            description=f"Réalisation de l'examen #{examination.pk}",
        )
        return examination

    @staticmethod
    @guard_write('ExaminationService.cancel_examination')
    @transaction.atomic
    def cancel_examination(*, examination_id, reason: str, actor=None):
        reason = (reason or '').strip()
        if not reason:
            raise BusinessRuleViolation(detail="Le motif d'annulation est obligatoire.")
        examination = _lock_examination(examination_id)
        old_values = {'status': examination.status, 'notes': examination.notes}
        _transition(
            examination, Status.CANCELLED,
            "Impossible d'annuler un examen déjà terminé ou annulé.",
        )
        examination.notes = _append_note(examination.notes, f'Annulé: {reason}')
        examination.updated_by = _real_user(actor)
        examination.save()

        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_STATUS_CHANGE,
            model_name='Examination',
            object_id=str(examination.pk),
            old_values=old_values,
            new_values={'status': examination.status, 'notes': examination.notes},
            description=f"Annulation de l'examen #{examination.pk}",
        )
        logger.info('ExaminationService.examination_cancelled %s', examination.pk)
        return examination

    @staticmethod
    @guard_write('ExaminationService.add_result')
    @transaction.atomic
    def add_result(
        *,
        examination_id,
        result_data: str = '',
        result_notes: str = '',
        attachment_path: str = '',
        report_date=None,
        actor=None,
    ) -> ExaminationResult:
        examination = _lock_examination(examination_id)
        if examination.status not in (Status.SCHEDULED, Status.COMPLETED):
            raise BusinessRuleViolation(
                detail="Impossible d'ajouter un résultat à un examen non planifié ou non terminé.",
            )
        if ExaminationResult.objects.filter(examination=examination).exists():
            raise DuplicateResourceError(detail='Un résultat existe déjà pour cet examen.')

        report_date = report_date or clock.now()
        try:
            with transaction.atomic():
                result = ExaminationResult.objects.create(
                    examination=examination,
                    result_data=result_data or '',
                    result_notes=result_notes or '',
                    attachment_path=attachment_path or '',
                    reported_by=_real_user(actor),
                    report_date=report_date,
                    created_by=_real_user(actor),
                )
        except IntegrityError:
            raise DuplicateResourceError(detail='Un résultat existe déjà pour cet examen.')

        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_CREATE,
            model_name='ExaminationResult',
            object_id=str(result.pk),
            new_values={'examination_id': str(examination.pk)},
            description=f"Ajout du résultat de l'examen #{examination.pk}",
        )

        if examination.status != Status.COMPLETED:
            old_status = _transition(examination, Status.COMPLETED, 'Transition invalide.')
            examination.performed_date = report_date
            examination.updated_by = _real_user(actor)
            examination.save()
            AuditService.log(
                actor=actor,
                action=AUDIT_ACTION_STATUS_CHANGE,
                model_name='Examination',
                object_id=str(examination.pk),
                old_values={'status': old_status},
                new_values={'status': examination.status, 'performed_date': report_date.isoformat()},
                description=f"Réalisation de l'examen #{examination.pk} à la saisie du résultat",
            )
        return result
