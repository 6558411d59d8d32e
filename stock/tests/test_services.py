"""
Tests — StockService: availability check, all-or-nothing decrement,
shortage audit, manual adjustment, thresholds and alert classification.

@file stock/tests/test_services.py
"""

import uuid
from decimal import Decimal
from unittest import mock

import pytest
from django.db import DatabaseError
from django.test import override_settings

from core.exceptions import (
    BusinessRuleViolation,
    InsufficientStockError,
    ResourceNotFoundError,
    StockShortageError,
)
from core.models import AuditLog
from stock.models import StockInventory, StockMovement
from stock.services import StockDemand, StockLevel, StockService
from stock.tasks import check_stock_thresholds_task
from tests.factories import (
    HospitalCenterFactory,
    ProductFactory,
    StockInventoryFactory,
    SuperuserFactory,
    UserFactory,
)


pytestmark = pytest.mark.django_db

CARE = StockMovement.MovementType.CARE
PRESCRIPTION = StockMovement.MovementType.PRESCRIPTION


def _decrement(center, demands, **kwargs):
    kwargs.setdefault('movement_type', PRESCRIPTION)
    kwargs.setdefault('reference_type', 'Prescription')
    kwargs.setdefault('reference_id', uuid.uuid4())
    return StockService.decrement(demands=demands, center_id=center.pk, **kwargs)


class TestCheckAvailability:

    def test_available_when_every_line_is_covered(self):
        row = StockInventoryFactory(current_quantity=Decimal('10'))
        report = StockService.check_availability(
            [StockDemand(row.product_id, Decimal('10'))], row.hospital_center_id,
        )
        assert report.is_available is True
        assert report.shortages == []

    def test_reports_every_short_line(self):
        center = HospitalCenterFactory()
        short = StockInventoryFactory(hospital_center=center, current_quantity=Decimal('3'))
        enough = StockInventoryFactory(hospital_center=center, current_quantity=Decimal('50'))
        missing = ProductFactory(name='Sans stock')

        report = StockService.check_availability(
            [(short.product_id, 5), (enough.product_id, 5), (missing.pk, 1)], center.pk,
        )
        assert report.is_available is False
        by_product = {s.product_id: s for s in report.shortages}
        assert set(by_product) == {short.product_id, missing.pk}
        assert by_product[short.product_id].available_quantity == Decimal('3')
        assert by_product[short.product_id].requested_quantity == Decimal('5')
        assert by_product[missing.pk].available_quantity == Decimal('0')

    def test_same_product_lines_are_summed(self):
        row = StockInventoryFactory(current_quantity=Decimal('5'))
        report = StockService.check_availability(
            [(row.product_id, 3), (row.product_id, 3)], row.hospital_center_id,
        )
        assert report.is_available is False
        assert report.shortages[0].requested_quantity == Decimal('6')

    def test_unparseable_product_reference_is_skipped(self):
        row = StockInventoryFactory(current_quantity=Decimal('5'))
        report = StockService.check_availability(
            [('PRD-unknown', 1), (row.product_id, 2)], row.hospital_center_id,
        )
        assert report.is_available is True
        assert report.shortages == []

    def test_unknown_product_is_ignored(self):
        center = HospitalCenterFactory()
        report = StockService.check_availability([(uuid.uuid4(), 5)], center.pk)
        assert report.is_available is True

    def test_other_center_stock_does_not_count(self):
        row = StockInventoryFactory(current_quantity=Decimal('100'))
        other_center = HospitalCenterFactory()
        report = StockService.check_availability([(row.product_id, 1)], other_center.pk)
        assert report.is_available is False

    def test_database_error_fails_closed(self):
        row = StockInventoryFactory()
        with mock.patch('stock.services.Product.objects.in_bulk', side_effect=DatabaseError('down')):
            report = StockService.check_availability([(row.product_id, 1)], row.hospital_center_id)
        assert report.is_available is False
        assert report.shortages == []


class TestDecrement:

    def test_unparseable_product_reference_is_skipped(self):
        row = StockInventoryFactory(current_quantity=Decimal('10'))
        results = _decrement(row.hospital_center, [('PRD-unknown', 1), (row.product_id, 4)])
        assert [r.product_id for r in results] == [row.product_id]
        row.refresh_from_db()
        assert row.current_quantity == Decimal('6')

    def test_decrements_and_appends_one_movement_per_line(self):
        center = HospitalCenterFactory()
        first = StockInventoryFactory(hospital_center=center, current_quantity=Decimal('10'))
        second = StockInventoryFactory(hospital_center=center, current_quantity=Decimal('4'))
        reference_id = uuid.uuid4()

        results = _decrement(
            center,
            [(first.product_id, 3), (second.product_id, 4)],
            reference_id=reference_id,
            actor=UserFactory(),
            notes='Dispensation',
        )

        first.refresh_from_db()
        second.refresh_from_db()
        assert first.current_quantity == Decimal('7')
        assert second.current_quantity == Decimal('0')
        assert {r.new_stock_level for r in results} == {Decimal('7'), Decimal('0')}

        movements = StockMovement.objects.filter(reference_id=reference_id)
        assert movements.count() == 2
        assert sorted(m.quantity for m in movements) == [Decimal('-4'), Decimal('-3')]
        assert all(m.movement_type == PRESCRIPTION for m in movements)
        assert all(m.notes == 'Dispensation' for m in movements)

    def test_shortage_writes_nothing(self):
        center = HospitalCenterFactory()
        enough = StockInventoryFactory(hospital_center=center, current_quantity=Decimal('10'))
        short = StockInventoryFactory(hospital_center=center, current_quantity=Decimal('1'))

        with pytest.raises(StockShortageError) as exc_info:
            _decrement(center, [(enough.product_id, 5), (short.product_id, 2)])

        assert [s.product_id for s in exc_info.value.shortages] == [short.product_id]
        enough.refresh_from_db()
        assert enough.current_quantity == Decimal('10')
        assert StockMovement.objects.count() == 0

    def test_missing_row_skipped_by_default(self):
        center = HospitalCenterFactory()
        row = StockInventoryFactory(hospital_center=center, current_quantity=Decimal('5'))
        no_row = ProductFactory()

        results = _decrement(center, [(row.product_id, 1), (no_row.pk, 1)], movement_type=CARE)
        assert [r.product_id for r in results] == [row.product_id]

    @override_settings(STOCK_SKIP_MISSING_PRODUCTS=False)
    def test_missing_row_is_a_shortage_when_not_skipped(self):
        center = HospitalCenterFactory()
        no_row = ProductFactory()
        with pytest.raises(StockShortageError) as exc_info:
            _decrement(center, [(no_row.pk, 1)])
        assert exc_info.value.shortages[0].available_quantity == Decimal('0')

    def test_explicit_flag_overrides_setting(self):
        center = HospitalCenterFactory()
        no_row = ProductFactory()
        with pytest.raises(StockShortageError):
            _decrement(center, [(no_row.pk, 1)], skip_missing_products=False)

    def test_invalid_movement_type(self):
        center = HospitalCenterFactory()
        with pytest.raises(BusinessRuleViolation):
            _decrement(center, [], movement_type='SALE')

    def test_non_positive_lines_are_dropped(self):
        row = StockInventoryFactory(current_quantity=Decimal('5'))
        results = _decrement(row.hospital_center, [(row.product_id, 0)])
        assert results == []
        row.refresh_from_db()
        assert row.current_quantity == Decimal('5')


class TestReportShortage:

    def test_writes_stock_check_fail_audit(self):
        row = StockInventoryFactory(current_quantity=Decimal('1'))
        reference_id = uuid.uuid4()
        with pytest.raises(StockShortageError) as exc_info:
            _decrement(row.hospital_center, [(row.product_id, 2)], reference_id=reference_id)

        StockService.report_shortage(
            reference_type='Prescription',
            reference_id=reference_id,
            center_id=row.hospital_center_id,
            shortages=exc_info.value.shortages,
            actor=UserFactory(),
        )
        entry = AuditLog.objects.get(action='STOCK_CHECK_FAIL', object_id=str(reference_id))
        assert entry.model_name == 'Prescription'
        assert entry.new_values['shortages'][0]['product_id'] == str(row.product_id)


class TestTrackingResult:

    def test_reference_number(self):
        center = HospitalCenterFactory(name='Centre Nord')
        source_id = uuid.UUID('abcdef12-0000-0000-0000-000000000000')
        result = StockService.tracking_result(
            source_type='Prescription', source_id=source_id,
            reference_prefix='PRESC', center=center, movements=[],
        )
        assert result.reference_number == 'PRESC-ABCDEF12'
        assert result.hospital_center_name == 'Centre Nord'


class TestAdjustStock:

    def test_first_movement_creates_row_as_initial(self):
        product = ProductFactory()
        center = HospitalCenterFactory()
        result = StockService.adjust_stock(
            product_id=product.pk, center_id=center.pk,
            quantity_delta=Decimal('20'), reason='Réception', actor=SuperuserFactory(),
        )
        assert result.movement_type == StockMovement.MovementType.INITIAL
        assert result.new_stock_level == Decimal('20')
        assert StockInventory.objects.get(product=product, hospital_center=center).current_quantity == Decimal('20')

    def test_existing_row_records_adjustment(self):
        row = StockInventoryFactory(current_quantity=Decimal('10'))
        result = StockService.adjust_stock(
            product_id=row.product_id, center_id=row.hospital_center_id,
            quantity_delta=Decimal('-4'), reason='Casse', actor=SuperuserFactory(),
        )
        assert result.movement_type == StockMovement.MovementType.ADJUSTMENT
        row.refresh_from_db()
        assert row.current_quantity == Decimal('6')

    def test_cannot_go_negative(self):
        row = StockInventoryFactory(current_quantity=Decimal('2'))
        with pytest.raises(InsufficientStockError):
            StockService.adjust_stock(
                product_id=row.product_id, center_id=row.hospital_center_id,
                quantity_delta=Decimal('-3'), reason='Inventaire',
            )

    def test_zero_delta_rejected(self):
        row = StockInventoryFactory()
        with pytest.raises(BusinessRuleViolation):
            StockService.adjust_stock(
                product_id=row.product_id, center_id=row.hospital_center_id, quantity_delta=0,
            )

    def test_unknown_product(self):
        with pytest.raises(ResourceNotFoundError):
            StockService.adjust_stock(
                product_id=uuid.uuid4(), center_id=HospitalCenterFactory().pk, quantity_delta=1,
            )


class TestThresholdsAndAlerts:

    def test_min_above_max_rejected(self):
        row = StockInventoryFactory()
        with pytest.raises(BusinessRuleViolation):
            StockService.set_thresholds(
                inventory_id=row.pk, minimum_threshold=Decimal('10'), maximum_threshold=Decimal('5'),
            )

    def test_omitted_threshold_is_kept(self):
        row = StockInventoryFactory(minimum_threshold=Decimal('5'), maximum_threshold=Decimal('100'))
        StockService.set_thresholds(inventory_id=row.pk, minimum_threshold=Decimal('20'))
        row.refresh_from_db()
        assert row.minimum_threshold == Decimal('20')
        assert row.maximum_threshold == Decimal('100')

    def test_min_checked_against_stored_max(self):
        row = StockInventoryFactory(minimum_threshold=Decimal('5'), maximum_threshold=Decimal('30'))
        with pytest.raises(BusinessRuleViolation):
            StockService.set_thresholds(inventory_id=row.pk, minimum_threshold=Decimal('40'))
        row.refresh_from_db()
        assert row.minimum_threshold == Decimal('5')

    def test_none_clears_threshold(self):
        row = StockInventoryFactory(minimum_threshold=Decimal('5'), maximum_threshold=Decimal('30'))
        StockService.set_thresholds(inventory_id=row.pk, maximum_threshold=None)
        row.refresh_from_db()
        assert row.maximum_threshold is None
        assert row.minimum_threshold == Decimal('5')

    @pytest.mark.parametrize('quantity, minimum, expected', [
        (Decimal('0'), Decimal('10'), StockLevel.OUT_OF_STOCK),
        (Decimal('0'), None, StockLevel.OUT_OF_STOCK),
        (Decimal('10'), Decimal('10'), StockLevel.LOW),
        (Decimal('15'), Decimal('10'), StockLevel.WARNING),
        (Decimal('16'), Decimal('10'), None),
        (Decimal('3'), None, None),
    ])
    def test_classify_stock_level(self, quantity, minimum, expected):
        assert StockService.classify_stock_level(quantity, minimum) == expected

    def test_alerts_sorted_by_severity_then_quantity(self):
        center = HospitalCenterFactory()
        warning = StockInventoryFactory(hospital_center=center, current_quantity=Decimal('14'),
                                        minimum_threshold=Decimal('10'))
        low = StockInventoryFactory(hospital_center=center, current_quantity=Decimal('8'),
                                    minimum_threshold=Decimal('10'))
        lower = StockInventoryFactory(hospital_center=center, current_quantity=Decimal('2'),
                                      minimum_threshold=Decimal('10'))
        out = StockInventoryFactory(hospital_center=center, current_quantity=Decimal('0'))
        StockInventoryFactory(hospital_center=center, current_quantity=Decimal('100'),
                              minimum_threshold=Decimal('10'))

        alerts = StockService.get_stock_alerts(center_id=center.pk)
        assert [a.inventory_id for a in alerts] == [out.pk, lower.pk, low.pk, warning.pk]

    def test_alerts_filtered_by_level(self):
        center = HospitalCenterFactory()
        StockInventoryFactory(hospital_center=center, current_quantity=Decimal('0'))
        low = StockInventoryFactory(hospital_center=center, current_quantity=Decimal('5'),
                                    minimum_threshold=Decimal('10'))
        alerts = StockService.get_stock_alerts(center_id=center.pk, level=StockLevel.LOW)
        assert [a.inventory_id for a in alerts] == [low.pk]

    def test_threshold_task_summary(self):
        center = HospitalCenterFactory()
        StockInventoryFactory(hospital_center=center, current_quantity=Decimal('0'))
        StockInventoryFactory(hospital_center=center, current_quantity=Decimal('5'),
                              minimum_threshold=Decimal('10'))
        summary = check_stock_thresholds_task(center_id=center.pk)
        assert summary == {'total': 2, 'out_of_stock': 1, 'low': 1, 'warning': 0}
