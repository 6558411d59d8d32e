"""
Tests — PrescriptionService: creation, item edits, availability and
dispensation against the centre's stock.

@file prescriptions/tests/test_services.py
"""

import uuid
from decimal import Decimal

import pytest

from core.exceptions import (
    BusinessRuleViolation,
    InvalidStateTransition,
    StockShortageError,
)
from core.models import AuditLog
from prescriptions.models import Prescription
from prescriptions.services import PrescriptionService
from stock.models import StockMovement
from tests.factories import (
    DiagnosisFactory,
    HospitalCenterFactory,
    MedicalStaffFactory,
    PatientFactory,
    PrescriptionFactory,
    PrescriptionItemFactory,
    ProductFactory,
    StockInventoryFactory,
)


pytestmark = pytest.mark.django_db


def _stocked_prescription(stock_quantity=Decimal('10'), prescribed=Decimal('4')):
    prescription = PrescriptionFactory()
    item = PrescriptionItemFactory(prescription=prescription, quantity=prescribed)
    row = StockInventoryFactory(
        product=item.product, hospital_center=prescription.hospital_center, current_quantity=stock_quantity,
    )
    return prescription, row


class TestCreatePrescription:

    def test_create_with_items(self):
        patient = PatientFactory()
        product = ProductFactory()
        prescription = PrescriptionService.create_prescription(
            patient_id=patient.pk,
            center_id=HospitalCenterFactory().pk,
            items=[{'product_id': product.pk, 'quantity': 2, 'dosage': ' 500mg '}],
            actor=MedicalStaffFactory(),
        )
        assert prescription.status == Prescription.StatusChoices.PENDING
        item = prescription.items.get()
        assert item.quantity == Decimal('2')
        assert item.dosage == '500mg'

    def test_unknown_products_skipped_but_one_required(self):
        with pytest.raises(BusinessRuleViolation):
            PrescriptionService.create_prescription(
                patient_id=PatientFactory().pk,
                center_id=HospitalCenterFactory().pk,
                items=[{'product_id': uuid.uuid4(), 'quantity': 1}],
            )

    def test_diagnosis_of_another_patient_rejected(self):
        with pytest.raises(BusinessRuleViolation):
            PrescriptionService.create_prescription(
                patient_id=PatientFactory().pk,
                center_id=HospitalCenterFactory().pk,
                diagnosis_id=DiagnosisFactory().pk,
                items=[{'product_id': ProductFactory().pk, 'quantity': 1}],
            )


class TestItems:

    def test_add_and_remove_item_audited(self):
        prescription = PrescriptionFactory()
        item = PrescriptionService.add_item(
            prescription_id=prescription.pk, product_id=ProductFactory().pk, quantity=3,
            actor=MedicalStaffFactory(),
        )
        PrescriptionService.remove_item(item_id=item.pk, actor=MedicalStaffFactory())
        assert prescription.items.count() == 0
        actions = set(AuditLog.objects.filter(model_name='PrescriptionItem').values_list('action', flat=True))
        assert {'ADD_ITEM', 'REMOVE_ITEM'} <= actions

    def test_dispensed_prescription_is_frozen(self):
        prescription = PrescriptionFactory(status=Prescription.StatusChoices.DISPENSED)
        with pytest.raises(InvalidStateTransition):
            PrescriptionService.add_item(
                prescription_id=prescription.pk, product_id=ProductFactory().pk, quantity=1,
            )


class TestDispense:

    def test_availability_report(self):
        prescription, _ = _stocked_prescription(stock_quantity=Decimal('1'))
        report = PrescriptionService.check_availability(prescription_id=prescription.pk)
        assert report.is_available is False

    def test_dispense_decrements_and_flips_status(self):
        prescription, row = _stocked_prescription()
        result = PrescriptionService.dispense_prescription(
            prescription_id=prescription.pk, actor=MedicalStaffFactory(),
        )

        prescription.refresh_from_db()
        row.refresh_from_db()
        assert prescription.status == Prescription.StatusChoices.DISPENSED
        assert prescription.dispensed_at is not None
        assert row.current_quantity == Decimal('6')
        assert result.reference_number.startswith('PRESC-')
        assert result.movements[0].new_stock_level == Decimal('6')
        movement = StockMovement.objects.get(reference_id=prescription.pk)
        assert movement.movement_type == StockMovement.MovementType.PRESCRIPTION
        assert AuditLog.objects.filter(action='DISPENSE', object_id=str(prescription.pk)).exists()

    def test_shortage_leaves_prescription_pending_and_is_audited(self):
        prescription, row = _stocked_prescription(stock_quantity=Decimal('2'))
        with pytest.raises(StockShortageError) as exc_info:
            PrescriptionService.dispense_prescription(prescription_id=prescription.pk)

        assert exc_info.value.shortages[0].available_quantity == Decimal('2')
        prescription.refresh_from_db()
        row.refresh_from_db()
        assert prescription.status == Prescription.StatusChoices.PENDING
        assert row.current_quantity == Decimal('2')
        assert not StockMovement.objects.exists()
        audit = AuditLog.objects.get(action='STOCK_CHECK_FAIL', object_id=str(prescription.pk))
        assert audit.model_name == 'Prescription'

    def test_cannot_dispense_twice(self):
        prescription, row = _stocked_prescription()
        PrescriptionService.dispense_prescription(prescription_id=prescription.pk)
        with pytest.raises(InvalidStateTransition):
            PrescriptionService.dispense_prescription(prescription_id=prescription.pk)
        row.refresh_from_db()
        assert row.current_quantity == Decimal('6')
