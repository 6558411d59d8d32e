"""
Tests — CareEpisodeService: episode lifecycle, care services with
product usage, stock consumption and the shortage audit.

@file care/tests/test_services.py
"""

import uuid
from decimal import Decimal

import pytest
from django.db import IntegrityError, transaction

from care.models import CareEpisode, CareServiceProduct
from care.services import CareEpisodeService
from core.exceptions import (
    BusinessRuleViolation,
    DuplicateResourceError,
    InvalidStateTransition,
    ResourceNotFoundError,
    StockShortageError,
)
from core.models import AuditLog
from stock.models import StockMovement
from tests.factories import (
    CareEpisodeFactory,
    CareServiceFactory,
    CareServiceProductFactory,
    CareTypeFactory,
    DiagnosisFactory,
    MedicalStaffFactory,
    PatientFactory,
    ProductFactory,
    StockInventoryFactory,
)


pytestmark = pytest.mark.django_db


class TestEpisodeLifecycle:

    def _create(self, diagnosis, **kwargs):
        return CareEpisodeService.create_episode(
            patient_id=diagnosis.patient_id,
            diagnosis_id=diagnosis.pk,
            center_id=diagnosis.hospital_center_id,
            primary_caregiver_id=MedicalStaffFactory().pk,
            actor=MedicalStaffFactory(),
            **kwargs,
        )

    def test_create_episode(self):
        diagnosis = DiagnosisFactory()
        episode = self._create(diagnosis)
        assert episode.status == CareEpisode.StatusChoices.ACTIVE
        assert episode.total_cost == Decimal('0')
        assert AuditLog.objects.filter(model_name='CareEpisode', object_id=str(episode.pk)).exists()

    def test_second_active_episode_for_same_diagnosis_rejected(self):
        diagnosis = DiagnosisFactory()
        self._create(diagnosis)
        with pytest.raises(DuplicateResourceError):
            self._create(diagnosis)

    def test_diagnosis_of_another_patient_rejected(self):
        diagnosis = DiagnosisFactory()
        with pytest.raises(ResourceNotFoundError):
            CareEpisodeService.create_episode(
                patient_id=PatientFactory().pk,
                diagnosis_id=diagnosis.pk,
                center_id=diagnosis.hospital_center_id,
                primary_caregiver_id=MedicalStaffFactory().pk,
            )

    def test_complete_then_no_further_transition(self):
        episode = CareEpisodeFactory()
        completed = CareEpisodeService.complete_episode(episode_id=episode.pk, actor=MedicalStaffFactory())
        assert completed.status == CareEpisode.StatusChoices.COMPLETED
        assert completed.episode_end_date is not None
        with pytest.raises(InvalidStateTransition):
            CareEpisodeService.interrupt_episode(episode_id=episode.pk, reason='Transfert')

    def test_interrupt_requires_reason(self):
        episode = CareEpisodeFactory()
        with pytest.raises(BusinessRuleViolation):
            CareEpisodeService.interrupt_episode(episode_id=episode.pk, reason='  ')

    def test_interrupt_records_reason(self):
        episode = CareEpisodeFactory()
        interrupted = CareEpisodeService.interrupt_episode(episode_id=episode.pk, reason='Transfert')
        assert interrupted.status == CareEpisode.StatusChoices.INTERRUPTED
        assert interrupted.interruption_reason == 'Transfert'

    def test_update_closed_episode_rejected(self):
        episode = CareEpisodeFactory(status=CareEpisode.StatusChoices.COMPLETED)
        with pytest.raises(BusinessRuleViolation):
            CareEpisodeService.update_episode(
                episode_id=episode.pk, primary_caregiver_id=MedicalStaffFactory().pk,
            )

    def test_update_caregiver(self):
        episode = CareEpisodeFactory()
        caregiver = MedicalStaffFactory()
        updated = CareEpisodeService.update_episode(episode_id=episode.pk, primary_caregiver_id=caregiver.pk)
        assert updated.primary_caregiver == caregiver


class TestAddCareService:

    def _add(self, episode, **kwargs):
        kwargs.setdefault('care_type_id', CareTypeFactory(base_price=Decimal('2000')).pk)
        kwargs.setdefault('administered_by_id', MedicalStaffFactory().pk)
        return CareEpisodeService.add_care_service(episode_id=episode.pk, actor=MedicalStaffFactory(), **kwargs)

    def test_cost_includes_products_and_stock_is_taken(self):
        episode = CareEpisodeFactory()
        product = ProductFactory(selling_price=Decimal('500'))
        row = StockInventoryFactory(
            product=product, hospital_center=episode.hospital_center, current_quantity=Decimal('10'),
        )

        service = self._add(episode, products=[(product.pk, 3)])

        assert service.cost == Decimal('3500')
        assert service.is_stock_consumed
        episode.refresh_from_db()
        assert episode.total_cost == Decimal('3500')
        assert episode.remaining_balance == Decimal('3500')
        row.refresh_from_db()
        assert row.current_quantity == Decimal('7')
        movement = StockMovement.objects.get(reference_id=service.pk)
        assert movement.movement_type == StockMovement.MovementType.CARE
        assert movement.quantity == Decimal('-3')

    def test_explicit_cost_overrides_base_price(self):
        episode = CareEpisodeFactory()
        service = self._add(episode, cost=Decimal('1500'))
        assert service.cost == Decimal('1500')

    def test_unknown_product_skipped(self):
        episode = CareEpisodeFactory()
        service = self._add(episode, products=[(uuid.uuid4(), 2)])
        assert service.products.count() == 0
        assert service.cost == Decimal('2000')

    def test_shortage_rolls_back_and_is_audited(self):
        episode = CareEpisodeFactory()
        product = ProductFactory()
        StockInventoryFactory(product=product, hospital_center=episode.hospital_center, current_quantity=Decimal('1'))

        with pytest.raises(StockShortageError):
            self._add(episode, products=[(product.pk, 5)])

        episode.refresh_from_db()
        assert episode.care_services.count() == 0
        assert episode.total_cost == Decimal('0')
        assert StockMovement.objects.count() == 0
        assert AuditLog.objects.filter(
            action='STOCK_CHECK_FAIL', model_name='CareEpisode', object_id=str(episode.pk),
        ).exists()

    def test_deferred_consumption_leaves_stock(self):
        episode = CareEpisodeFactory()
        product = ProductFactory()
        row = StockInventoryFactory(product=product, hospital_center=episode.hospital_center)
        service = self._add(episode, products=[(product.pk, 2)], consume_stock=False)
        assert not service.is_stock_consumed
        row.refresh_from_db()
        assert row.current_quantity == Decimal('100')

    def test_closed_episode_rejected(self):
        episode = CareEpisodeFactory(status=CareEpisode.StatusChoices.COMPLETED)
        with pytest.raises(BusinessRuleViolation):
            self._add(episode)


class TestRecordProductUsage:

    def _service_with_product(self, quantity_in_stock=Decimal('10'), **episode_kwargs):
        episode = CareEpisodeFactory(**episode_kwargs)
        service = CareServiceFactory(episode=episode)
        line = CareServiceProductFactory(care_service=service, quantity_used=Decimal('4'))
        row = StockInventoryFactory(
            product=line.product, hospital_center=episode.hospital_center, current_quantity=quantity_in_stock,
        )
        return service, row

    def test_consumes_once(self):
        service, row = self._service_with_product()
        result = CareEpisodeService.record_care_service_product_usage(
            care_service_id=service.pk, actor=MedicalStaffFactory(),
        )
        assert result.source_type == 'CareService'
        assert result.reference_number.startswith('CARE-')
        assert [m.new_stock_level for m in result.movements] == [Decimal('6')]
        row.refresh_from_db()
        assert row.current_quantity == Decimal('6')

        with pytest.raises(BusinessRuleViolation):
            CareEpisodeService.record_care_service_product_usage(care_service_id=service.pk)

    def test_episode_must_be_active(self):
        service, _ = self._service_with_product(status=CareEpisode.StatusChoices.INTERRUPTED)
        with pytest.raises(InvalidStateTransition):
            CareEpisodeService.record_care_service_product_usage(care_service_id=service.pk)

    def test_shortage_is_audited_against_the_service(self):
        service, row = self._service_with_product(quantity_in_stock=Decimal('1'))
        with pytest.raises(StockShortageError):
            CareEpisodeService.record_care_service_product_usage(care_service_id=service.pk)
        service.refresh_from_db()
        assert service.stock_consumed_at is None
        assert AuditLog.objects.filter(
            action='STOCK_CHECK_FAIL', model_name='CareService', object_id=str(service.pk),
        ).exists()

    def test_unknown_service(self):
        with pytest.raises(ResourceNotFoundError):
            CareEpisodeService.record_care_service_product_usage(care_service_id=uuid.uuid4())


def test_product_listed_once_per_care_service():
    line = CareServiceProductFactory()
    with pytest.raises(IntegrityError), transaction.atomic():
        CareServiceProduct.objects.create(
            care_service=line.care_service, product=line.product,
            quantity_used=Decimal('1'), unit_cost=Decimal('1'), total_cost=Decimal('1'),
        )
