"""
Stock — Service Layer

Availability checks and decrements of per-centre inventory rows.

check_availability() is a read: it reports per-product shortages and
fails closed on database errors. decrement() re-checks every line under
row locks and applies each subtraction as a conditional UPDATE, so two
concurrent dispensations can never both take the last units. Every
decremented line appends exactly one signed StockMovement.

@file stock/services.py
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Iterable
from uuid import UUID

from django.conf import settings
from django.db import DatabaseError, models, transaction
from django.db.models import F, OuterRef, Subquery
from django.utils import timezone

from catalog.models import Product
from centers.models import HospitalCenter
from core import clock
from core.constants import AUDIT_ACTION_STOCK_CHECK_FAIL, AUDIT_ACTION_STOCK_MOVEMENT, AUDIT_ACTION_UPDATE
from core.exceptions import (
    BusinessRuleViolation,
    InsufficientStockError,
    ResourceNotFoundError,
    StockShortageError,
    guard_write,
)
from core.services import AuditService

from .models import StockInventory, StockMovement

logger = logging.getLogger('hospitrack')

# Keyword default meaning "keep the stored value".
UNCHANGED = object()


# ---------------------------------------------------------------------------
# Value objects
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StockDemand:
    product_id: UUID
    quantity: Decimal


@dataclass(frozen=True)
class StockShortage:
    product_id: UUID
    product_name: str
    requested_quantity: Decimal
    available_quantity: Decimal

    def as_dict(self) -> dict:
        return {
            'product_id': str(self.product_id),
            'product_name': self.product_name,
            'requested_quantity': str(self.requested_quantity),
            'available_quantity': str(self.available_quantity),
        }


@dataclass(frozen=True)
class AvailabilityReport:
    is_available: bool
    shortages: list[StockShortage] = field(default_factory=list)


@dataclass(frozen=True)
class MovementResult:
    movement_id: UUID
    product_id: UUID
    product_name: str
    unit_of_measure: str
    quantity: Decimal
    new_stock_level: Decimal
    movement_type: str
    movement_date: datetime


@dataclass(frozen=True)
class StockTrackingResult:
    """What a dispensation or care usage did to the centre's stock."""
    source_type: str
    source_id: UUID
    reference_number: str
    hospital_center_id: UUID
    hospital_center_name: str
    movements: list[MovementResult] = field(default_factory=list)


class StockLevel(models.TextChoices):
    OUT_OF_STOCK = 'OUT_OF_STOCK', 'Rupture'
    LOW = 'LOW', 'Stock bas'
    WARNING = 'WARNING', 'Attention'


LEVEL_RANK = {
    StockLevel.OUT_OF_STOCK: 0,
    StockLevel.LOW: 1,
    StockLevel.WARNING: 2,
}


@dataclass(frozen=True)
class StockAlert:
    inventory_id: UUID
    product_id: UUID
    product_name: str
    category_name: str
    unit_of_measure: str
    hospital_center_id: UUID
    hospital_center_name: str
    current_quantity: Decimal
    minimum_threshold: Decimal | None
    maximum_threshold: Decimal | None
    level: str
    last_movement_date: datetime | None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _normalise_demands(demands: Iterable) -> list[StockDemand]:
    """
    Accept StockDemand objects or (product_id, quantity) pairs. Lines with
    a non-positive quantity or an unparseable product id are dropped;
    lines for the same product are summed so the check sees the full
    amount requested.
    """
    totals: 'OrderedDict[UUID, Decimal]' = OrderedDict()
    for demand in demands:
        if isinstance(demand, StockDemand):
            product_id, quantity = demand.product_id, demand.quantity
        else:
            product_id, quantity = demand
        quantity = Decimal(str(quantity))
        if quantity <= 0:
            continue
        try:
            key = UUID(str(product_id))
        except (TypeError, ValueError):
            logger.warning('StockService.unresolved_product_skipped product=%r', product_id)
            continue
        totals[key] = totals.get(key, Decimal('0')) + quantity
    return [StockDemand(product_id=pid, quantity=qty) for pid, qty in totals.items()]


def _lock_inventory_rows(center_id, product_ids) -> dict[UUID, StockInventory]:
    """Lock the centre's rows for these products, in product order to avoid deadlocks."""
    rows = (
        StockInventory.objects
        .select_for_update()
        .filter(hospital_center_id=center_id, product_id__in=product_ids)
        .order_by('product_id')
    )
    return {row.product_id: row for row in rows}


def _actor_or_none(actor):
    if actor is not None and getattr(actor, 'is_authenticated', False):
        return actor
    return None


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class StockService:
    """Inventory rows per centre: availability, decrement, adjustment, alerts."""

    @staticmethod
    def check_availability(demands: Iterable, center_id) -> AvailabilityReport:
        """
        Report every line the centre cannot serve. Unknown products are
        skipped. Any database failure blocks the operation: unavailable,
        with no shortage detail.
        """
        lines = _normalise_demands(demands)
        if not lines:
            return AvailabilityReport(is_available=True)
        try:
            with transaction.atomic():
                products = Product.objects.in_bulk([line.product_id for line in lines])
                rows = {
                    row.product_id: row
                    for row in StockInventory.objects.filter(
                        hospital_center_id=center_id,
                        product_id__in=products.keys(),
                    )
                }
        except DatabaseError:
            logger.exception('StockService.availability_check_failed center=%s', center_id)
            return AvailabilityReport(is_available=False)

        shortages = []
        for line in lines:
            product = products.get(line.product_id)
            if product is None:
                continue
            row = rows.get(line.product_id)
            available = row.current_quantity if row is not None else Decimal('0')
            if row is None or available < line.quantity:
                shortages.append(StockShortage(
                    product_id=line.product_id,
                    product_name=product.name,
                    requested_quantity=line.quantity,
                    available_quantity=available,
                ))
        return AvailabilityReport(is_available=not shortages, shortages=shortages)

    @staticmethod
    @transaction.atomic
    def decrement(
        *,
        demands: Iterable,
        center_id,
        movement_type: str,
        reference_type: str,
        reference_id,
        actor=None,
        notes: str = '',
        skip_missing_products: bool | None = None,
    ) -> list[MovementResult]:
        """
        Subtract every line from the centre's inventory and append one
        movement of -quantity per line, all or nothing.

        Rows are locked first; each subtraction only applies while
        current_quantity >= quantity. Any line that cannot be served
        raises StockShortageError listing all of them, and nothing is
        written. Lines without an inventory row are skipped when
        skip_missing_products is true (default STOCK_SKIP_MISSING_PRODUCTS),
        otherwise they are shortages with 0 available.
        """
        if movement_type not in StockMovement.MovementType.values:
            raise BusinessRuleViolation(detail=f'Invalid movement_type: {movement_type}')
        if skip_missing_products is None:
            skip_missing_products = settings.STOCK_SKIP_MISSING_PRODUCTS

        actor = _actor_or_none(actor)
        lines = _normalise_demands(demands)
        products = Product.objects.in_bulk([line.product_id for line in lines])
        rows = _lock_inventory_rows(center_id, products.keys())
        movement_date = clock.now()

        results: list[MovementResult] = []
        shortages: list[StockShortage] = []
        for line in lines:
            product = products.get(line.product_id)
            if product is None:
                continue
            row = rows.get(line.product_id)
            if row is None:
                if skip_missing_products:
                    logger.warning(
                        'StockService.inventory_row_missing product=%s center=%s ref=%s:%s',
                        line.product_id, center_id, reference_type, reference_id,
                    )
                    continue
                shortages.append(StockShortage(line.product_id, product.name, line.quantity, Decimal('0')))
                continue

            updated = StockInventory.objects.filter(
                pk=row.pk, current_quantity__gte=line.quantity,
            ).update(
                current_quantity=F('current_quantity') - line.quantity,
                updated_by=actor,
                updated_at=timezone.now(),
            )
            if not updated:
                shortages.append(StockShortage(line.product_id, product.name, line.quantity, row.current_quantity))
                continue

            row.refresh_from_db(fields=['current_quantity'])
            movement = StockMovement.objects.create(
                product=product,
                hospital_center_id=center_id,
                movement_type=movement_type,
                quantity=-line.quantity,
                reference_type=reference_type,
                reference_id=reference_id,
                notes=notes,
                movement_date=movement_date,
                created_by=actor,
            )
            results.append(MovementResult(
                movement_id=movement.pk,
                product_id=product.pk,
                product_name=product.name,
                unit_of_measure=product.unit_of_measure,
                quantity=movement.quantity,
                new_stock_level=row.current_quantity,
                movement_type=movement_type,
                movement_date=movement_date,
            ))

        if shortages:
            raise StockShortageError(shortages)

        logger.info(
            'StockService.stock_decremented center=%s ref=%s:%s lines=%d',
            center_id, reference_type, reference_id, len(results),
        )
        return results

    @staticmethod
    def report_shortage(*, reference_type: str, reference_id, center_id, shortages, actor=None) -> None:
        """
        Audit a refused consumption. Call it outside the failed
        transaction, otherwise the entry is rolled back with it.
        """
        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_STOCK_CHECK_FAIL,
            model_name=reference_type,
            object_id=str(reference_id),
            new_values={
                'hospital_center_id': str(center_id),
                'shortages': [s.as_dict() for s in shortages],
            },
            description=f'Stock insuffisant pour {reference_type} #{reference_id}',
        )
        logger.warning(
            'StockService.stock_check_failed ref=%s:%s center=%s shortages=%d',
            reference_type, reference_id, center_id, len(shortages),
        )

    @staticmethod
    def tracking_result(
        *,
        source_type: str,
        source_id,
        reference_prefix: str,
        center: HospitalCenter,
        movements: list[MovementResult],
    ) -> StockTrackingResult:
        return StockTrackingResult(
            source_type=source_type,
            source_id=source_id,
            reference_number=f'{reference_prefix}-{str(source_id)[:8].upper()}',
            hospital_center_id=center.pk,
            hospital_center_name=center.name,
            movements=movements,
        )

    @staticmethod
    @guard_write('StockService.adjust_stock')
    @transaction.atomic
    def adjust_stock(
        *,
        product_id,
        center_id,
        quantity_delta,
        reason: str = '',
        actor=None,
    ) -> MovementResult:
        """
        Signed manual correction. The first movement of a product in a
        centre creates its inventory row and is recorded as INITIAL.
        """
        quantity_delta = Decimal(str(quantity_delta))
        if quantity_delta == 0:
            raise BusinessRuleViolation(detail='La quantité doit être différente de zéro.')
        actor = _actor_or_none(actor)

        try:
            product = Product.objects.get(pk=product_id)
        except Product.DoesNotExist:
            raise ResourceNotFoundError(detail='Produit introuvable.')
        if not HospitalCenter.objects.filter(pk=center_id).exists():
            raise ResourceNotFoundError(detail='Centre hospitalier introuvable.')

        row = StockInventory.objects.select_for_update().filter(
            product_id=product_id, hospital_center_id=center_id,
        ).first()
        movement_type = StockMovement.MovementType.ADJUSTMENT
        if row is None:
            row = StockInventory(
                product=product,
                hospital_center_id=center_id,
                current_quantity=Decimal('0'),
                created_by=actor,
            )
            movement_type = StockMovement.MovementType.INITIAL

        new_quantity = row.current_quantity + quantity_delta
        if new_quantity < 0:
            raise InsufficientStockError(
                detail=f'Insufficient stock: balance={row.current_quantity}, requested={-quantity_delta}.',
            )
        row.current_quantity = new_quantity
        row.updated_by = actor
        row.save()

        movement = StockMovement.objects.create(
            product=product,
            hospital_center_id=center_id,
            movement_type=movement_type,
            quantity=quantity_delta,
            reference_type='StockInventory',
            reference_id=row.pk,
            notes=reason,
            movement_date=clock.now(),
            created_by=actor,
        )
        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_STOCK_MOVEMENT,
            model_name='StockMovement',
            object_id=str(movement.pk),
            new_values={
                'product_id': str(product.pk),
                'hospital_center_id': str(center_id),
                'movement_type': movement_type,
                'quantity': str(quantity_delta),
                'new_stock_level': str(new_quantity),
            },
            description=reason,
        )
        logger.info(
            'StockService.stock_adjusted %s product=%s center=%s delta=%s new=%s',
            movement_type, product.pk, center_id, quantity_delta, new_quantity,
        )
        return MovementResult(
            movement_id=movement.pk,
            product_id=product.pk,
            product_name=product.name,
            unit_of_measure=product.unit_of_measure,
            quantity=quantity_delta,
            new_stock_level=new_quantity,
            movement_type=movement_type,
            movement_date=movement.movement_date,
        )

    @staticmethod
    @guard_write('StockService.set_thresholds')
    @transaction.atomic
    def set_thresholds(
        *, inventory_id, minimum_threshold=UNCHANGED, maximum_threshold=UNCHANGED, actor=None,
    ) -> StockInventory:
        """Thresholds left as UNCHANGED keep their stored value; None clears one."""
        try:
            row = StockInventory.objects.select_for_update().get(pk=inventory_id)
        except StockInventory.DoesNotExist:
            raise ResourceNotFoundError(detail='Ligne de stock introuvable.')
        if minimum_threshold is UNCHANGED:
            minimum_threshold = row.minimum_threshold
        if maximum_threshold is UNCHANGED:
            maximum_threshold = row.maximum_threshold
        if (
            minimum_threshold is not None and maximum_threshold is not None
            and minimum_threshold > maximum_threshold
        ):
            raise BusinessRuleViolation(detail='Le seuil minimum dépasse le seuil maximum.')

        old_values = {
            'minimum_threshold': str(row.minimum_threshold) if row.minimum_threshold is not None else None,
            'maximum_threshold': str(row.maximum_threshold) if row.maximum_threshold is not None else None,
        }
        row.minimum_threshold = minimum_threshold
        row.maximum_threshold = maximum_threshold
        row.updated_by = _actor_or_none(actor)
        row.save(update_fields=['minimum_threshold', 'maximum_threshold', 'updated_by', 'updated_at'])

        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_UPDATE,
            model_name='StockInventory',
            object_id=str(row.pk),
            old_values=old_values,
            new_values={
                'minimum_threshold': str(minimum_threshold) if minimum_threshold is not None else None,
                'maximum_threshold': str(maximum_threshold) if maximum_threshold is not None else None,
            },
        )
        return row

    @staticmethod
    def classify_stock_level(quantity, minimum_threshold) -> str | None:
        """OUT_OF_STOCK, LOW, WARNING, or None for a normal level."""
        if quantity <= 0:
            return StockLevel.OUT_OF_STOCK
        if minimum_threshold is None:
            return None
        if quantity <= minimum_threshold:
            return StockLevel.LOW
        if quantity <= minimum_threshold * settings.STOCK_WARNING_FACTOR:
            return StockLevel.WARNING
        return None

    @staticmethod
    def get_stock_alerts(*, center_id=None, level: str | None = None) -> list[StockAlert]:
        """
        Alerts for every row below a normal level, most severe first, then
        lowest quantity first.
        """
        last_movement = (
            StockMovement.objects
            .filter(product_id=OuterRef('product_id'), hospital_center_id=OuterRef('hospital_center_id'))
            .order_by('-movement_date')
            .values('movement_date')[:1]
        )
        rows = (
            StockInventory.objects
            .select_related('product', 'product__category', 'hospital_center')
            .annotate(last_movement_date=Subquery(last_movement))
        )
        if center_id is not None:
            rows = rows.filter(hospital_center_id=center_id)

        alerts = []
        for row in rows:
            row_level = StockService.classify_stock_level(row.current_quantity, row.minimum_threshold)
            if row_level is None or (level and row_level != level):
                continue
            category = row.product.category
            alerts.append(StockAlert(
                inventory_id=row.pk,
                product_id=row.product_id,
                product_name=row.product.name,
                category_name=category.name if category else 'Non catégorisé',
                unit_of_measure=row.product.unit_of_measure,
                hospital_center_id=row.hospital_center_id,
                hospital_center_name=row.hospital_center.name,
                current_quantity=row.current_quantity,
                minimum_threshold=row.minimum_threshold,
                maximum_threshold=row.maximum_threshold,
                level=row_level,
                last_movement_date=row.last_movement_date,
            ))
        alerts.sort(key=lambda a: (LEVEL_RANK[a.level], a.current_quantity))
        return alerts
