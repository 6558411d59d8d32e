"""
Tests — ExaminationService: pricing, status machine and results.

@file examinations/tests/test_services.py
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from core.exceptions import (
    BusinessRuleViolation,
    DuplicateResourceError,
    InvalidStateTransition,
)
from examinations.models import Examination
from examinations.services import ExaminationService
from tests.factories import (
    CareEpisodeFactory,
    ExaminationFactory,
    ExaminationTypeFactory,
    HospitalCenterFactory,
    MedicalStaffFactory,
    PatientFactory,
)


pytestmark = pytest.mark.django_db

Status = Examination.StatusChoices


def _scheduled():
    examination = ExaminationFactory()
    return ExaminationService.schedule_examination(
        examination_id=examination.pk,
        scheduled_date=timezone.now() + timedelta(days=1),
        performed_by_id=MedicalStaffFactory().pk,
    )


class TestCreateExamination:

    def test_final_price_is_base_minus_discount(self):
        exam_type = ExaminationTypeFactory(base_price=Decimal('5000'))
        examination = ExaminationService.create_examination(
            patient_id=PatientFactory().pk,
            examination_type_id=exam_type.pk,
            center_id=HospitalCenterFactory().pk,
            discount_amount=Decimal('1000'),
            actor=MedicalStaffFactory(),
        )
        assert examination.status == Status.REQUESTED
        assert examination.final_price == Decimal('4000')

    def test_discount_above_base_price_rejected(self):
        exam_type = ExaminationTypeFactory(base_price=Decimal('5000'))
        with pytest.raises(BusinessRuleViolation):
            ExaminationService.create_examination(
                patient_id=PatientFactory().pk,
                examination_type_id=exam_type.pk,
                center_id=HospitalCenterFactory().pk,
                discount_amount=Decimal('6000'),
            )

    def test_episode_must_belong_to_patient(self):
        episode = CareEpisodeFactory()
        with pytest.raises(BusinessRuleViolation):
            ExaminationService.create_examination(
                patient_id=PatientFactory().pk,
                examination_type_id=ExaminationTypeFactory().pk,
                center_id=episode.hospital_center_id,
                care_episode_id=episode.pk,
            )


class TestStatusMachine:

    def test_schedule_then_complete(self):
        examination = _scheduled()
        assert examination.status == Status.SCHEDULED
        completed = ExaminationService.complete_examination(examination_id=examination.pk)
        assert completed.status == Status.COMPLETED
        assert completed.performed_date is not None

    def test_cannot_complete_requested(self):
        examination = ExaminationFactory()
        with pytest.raises(InvalidStateTransition):
            ExaminationService.complete_examination(examination_id=examination.pk)

    def test_cancel_appends_reason(self):
        examination = ExaminationFactory(notes='À jeun')
        cancelled = ExaminationService.cancel_examination(examination_id=examination.pk, reason='Patient absent')
        assert cancelled.status == Status.CANCELLED
        assert cancelled.notes == 'À jeun\nAnnulé: Patient absent'

    def test_cannot_cancel_completed(self):
        examination = _scheduled()
        ExaminationService.complete_examination(examination_id=examination.pk)
        with pytest.raises(InvalidStateTransition):
            ExaminationService.cancel_examination(examination_id=examination.pk, reason='Erreur')


class TestResults:

    def test_result_completes_scheduled_examination(self):
        examination = _scheduled()
        result = ExaminationService.add_result(
            examination_id=examination.pk, result_data='Hb 12 g/dL', actor=MedicalStaffFactory(),
        )
        examination.refresh_from_db()
        assert result.examination_id == examination.pk
        assert examination.status == Status.COMPLETED

    def test_second_result_rejected(self):
        examination = _scheduled()
        ExaminationService.add_result(examination_id=examination.pk, result_data='RAS')
        with pytest.raises(DuplicateResourceError):
            ExaminationService.add_result(examination_id=examination.pk, result_data='RAS bis')

    def test_requested_examination_cannot_receive_result(self):
        examination = ExaminationFactory()
        with pytest.raises(BusinessRuleViolation):
            ExaminationService.add_result(examination_id=examination.pk, result_data='RAS')
