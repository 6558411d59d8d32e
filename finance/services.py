"""
Finance — Service Layer

Cash desk ledger for a hospital centre.

Two event streams feed the balance: cash payments received (IN) and
cash handovers to financiers (OUT). A handover records the cash left
in the drawer, so the current balance is anchored on the last
handover's remainder plus every cash payment received after it.

A payment counts as cash when its method is flagged is_cash_equivalent
and its notes do not start with CANCELLED_PAYMENT_MARKER.

Handover creation is serialized per centre: the centre row is locked
and, on PostgreSQL, a transaction-scoped advisory lock is taken on the
centre id.

@file finance/services.py
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from uuid import UUID

from django.conf import settings
from django.db import connection, transaction
from django.db.models import QuerySet, Sum
from django.utils import timezone

from care.models import CareEpisode
from centers.models import HospitalCenter
from core import clock
from core.constants import (
    AUDIT_ACTION_CASH_HANDOVER,
    AUDIT_ACTION_CREATE,
    AUDIT_ACTION_PAYMENT_CANCEL,
    AUDIT_ACTION_STATUS_CHANGE,
    AUDIT_ACTION_UPDATE,
    CANCELLED_PAYMENT_MARKER,
)
from core.exceptions import (
    BusinessRuleViolation,
    DuplicateResourceError,
    ResourceNotFoundError,
    guard_write,
)
from core.services import AuditService
from examinations.models import Examination
from patients.models import Patient

from .models import CashHandover, Financier, Payment, PaymentMethod

logger = logging.getLogger('hospitrack')

ZERO = Decimal('0')

DIRECTION_IN = 'IN'
DIRECTION_OUT = 'OUT'


# ---------------------------------------------------------------------------
# Value objects
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CashMovement:
    date: datetime
    type: str
    description: str
    amount: Decimal
    direction: str
    reference_type: str
    reference_id: UUID
    balance: Decimal


@dataclass(frozen=True)
class CashPosition:
    hospital_center_id: UUID
    hospital_center_name: str
    current_balance: Decimal
    last_handover_date: datetime | None
    last_handover_amount: Decimal
    receipts_since_last_handover: Decimal
    days_since_last_handover: int
    average_daily_receipts: Decimal


@dataclass(frozen=True)
class ReceiptsByReference:
    reference_type: str
    total_amount: Decimal
    count: int


@dataclass(frozen=True)
class CashReconciliation:
    hospital_center_id: UUID
    hospital_center_name: str
    last_handover_date: datetime | None
    last_handover_remaining_amount: Decimal
    total_cash_receipts_since: Decimal
    payment_count: int
    payment_details: list[ReceiptsByReference] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def cash_payments(center_id) -> QuerySet:
    """Non-cancelled payments of a cash-equivalent method for one centre."""
    return (
        Payment.objects
        .filter(hospital_center_id=center_id, payment_method__is_cash_equivalent=True)
        .exclude(notes__startswith=CANCELLED_PAYMENT_MARKER)
    )


def _sum_amount(qs) -> Decimal:
    return qs.aggregate(total=Sum('amount'))['total'] or ZERO


def _last_handover(center_id, before=None) -> CashHandover | None:
    """Latest handover by date; equal dates resolve to the latest created, then highest id."""
    qs = CashHandover.objects.filter(hospital_center_id=center_id)
    if before is not None:
        qs = qs.filter(handover_date__lt=before)
    return qs.order_by('-handover_date', '-created_at', '-id').first()


def _get_center(center_id) -> HospitalCenter:
    try:
        return HospitalCenter.objects.get(pk=center_id)
    except HospitalCenter.DoesNotExist:
        raise ResourceNotFoundError(detail='Centre hospitalier invalide.')


def _as_datetime(value, *, end: bool) -> datetime:
    """Widen a date (or the date of a datetime) to its first or last instant."""
    if isinstance(value, datetime):
        value = timezone.localtime(value).date() if timezone.is_aware(value) else value.date()
    return clock.end_of_day(value) if end else clock.start_of_day(value)


def _lock_center(center_id) -> HospitalCenter:
    try:
        center = HospitalCenter.objects.select_for_update().get(pk=center_id)
    except HospitalCenter.DoesNotExist:
        raise ResourceNotFoundError(detail='Centre hospitalier invalide.')
    if connection.vendor == 'postgresql':
        key = UUID(str(center.pk)).int & 0x7FFFFFFFFFFFFFFF
        with connection.cursor() as cursor:
            cursor.execute('SELECT pg_advisory_xact_lock(%s)', [key])
    return center


def _real_user(actor):
    return actor if getattr(actor, 'is_authenticated', False) else None


# ---------------------------------------------------------------------------
# Cash ledger
# ---------------------------------------------------------------------------

class CashLedgerService:
    """Balances, history and handovers of a centre's cash desk."""

    @staticmethod
    def current_balance(center_id) -> Decimal:
        last = _last_handover(center_id)
        payments = cash_payments(center_id)
        if last is None:
            return _sum_amount(payments)
        return last.remaining_cash_amount + _sum_amount(payments.filter(payment_date__gt=last.handover_date))

    @staticmethod
    def balance_as_of(center_id, as_of: datetime) -> Decimal:
        """Balance just before `as_of`: events at exactly `as_of` are excluded."""
        last = _last_handover(center_id, before=as_of)
        payments = cash_payments(center_id).filter(payment_date__lt=as_of)
        if last is None:
            return _sum_amount(payments)
        return last.remaining_cash_amount + _sum_amount(payments.filter(payment_date__gt=last.handover_date))

    @staticmethod
    def movement_history(center_id, from_date=None, to_date=None) -> list[CashMovement]:
        """
        Cash receipts and handovers between from_date (start of day) and
        to_date (end of day), oldest first, each carrying the balance
        after it. Defaults to the last CASH_HISTORY_DEFAULT_DAYS days.
        Receipts sort before handovers at the same timestamp.
        """
        if from_date is None:
            from_date = clock.today() - timedelta(days=settings.CASH_HISTORY_DEFAULT_DAYS)
        start = _as_datetime(from_date, end=False)
        end = _as_datetime(to_date, end=True) if to_date is not None else clock.now()

        events = []
        payments = (
            cash_payments(center_id)
            .filter(payment_date__gte=start, payment_date__lte=end)
            .order_by('payment_date', 'created_at')
        )
        for payment in payments:
            events.append((payment.payment_date, 0, {
                'type': 'Paiement',
                'description': f'Paiement {payment.reference_type} #{payment.reference_id}',
                'amount': payment.amount,
                'direction': DIRECTION_IN,
                'reference_type': payment.reference_type,
                'reference_id': payment.reference_id,
            }))
        handovers = (
            CashHandover.objects
            .filter(hospital_center_id=center_id, handover_date__gte=start, handover_date__lte=end)
            .select_related('financier')
            .order_by('handover_date', 'created_at')
        )
        for handover in handovers:
            events.append((handover.handover_date, 1, {
                'type': 'Remise',
                'description': f'Remise au financier {handover.financier.name}',
                'amount': handover.handover_amount,
                'direction': DIRECTION_OUT,
                'reference_type': 'CashHandover',
                'reference_id': handover.pk,
            }))
        events.sort(key=lambda event: (event[0], event[1]))

        balance = CashLedgerService.balance_as_of(center_id, start)
        movements = []
        for when, _, data in events:
            if data['direction'] == DIRECTION_IN:
                balance += data['amount']
            else:
                balance -= data['amount']
            movements.append(CashMovement(date=when, balance=balance, **data))
        return movements

    @staticmethod
    def receipts_since_last_handover(center_id) -> CashReconciliation:
        center = _get_center(center_id)
        last = _last_handover(center.pk)
        payments = cash_payments(center.pk)
        if last is not None:
            payments = payments.filter(payment_date__gt=last.handover_date)

        by_type: 'OrderedDict[str, list]' = OrderedDict()
        total = ZERO
        count = 0
        for reference_type, amount in payments.order_by('reference_type').values_list('reference_type', 'amount'):
            bucket = by_type.setdefault(reference_type, [ZERO, 0])
            bucket[0] += amount
            bucket[1] += 1
            total += amount
            count += 1

        return CashReconciliation(
            hospital_center_id=center.pk,
            hospital_center_name=center.name,
            last_handover_date=last.handover_date if last else None,
            last_handover_remaining_amount=last.remaining_cash_amount if last else ZERO,
            total_cash_receipts_since=total,
            payment_count=count,
            payment_details=[
                ReceiptsByReference(reference_type=ref, total_amount=amount, count=n)
                for ref, (amount, n) in by_type.items()
            ],
        )

    @staticmethod
    def cash_position(center_id) -> CashPosition:
        center = _get_center(center_id)
        last = _last_handover(center.pk)
        if last is None:
            balance = CashLedgerService.current_balance(center.pk)
            return CashPosition(
                hospital_center_id=center.pk,
                hospital_center_name=center.name,
                current_balance=balance,
                last_handover_date=None,
                last_handover_amount=ZERO,
                receipts_since_last_handover=balance,
                days_since_last_handover=0,
                average_daily_receipts=ZERO,
            )

        receipts = _sum_amount(cash_payments(center.pk).filter(payment_date__gt=last.handover_date))
        days = max(1, (clock.now() - last.handover_date).days)
        return CashPosition(
            hospital_center_id=center.pk,
            hospital_center_name=center.name,
            current_balance=last.remaining_cash_amount + receipts,
            last_handover_date=last.handover_date,
            last_handover_amount=last.handover_amount,
            receipts_since_last_handover=receipts,
            days_since_last_handover=days,
            average_daily_receipts=(receipts / days).quantize(Decimal('0.01')),
        )

    @staticmethod
    @guard_write('CashLedgerService.create_handover')
    @transaction.atomic
    def create_handover(
        *,
        center_id,
        financier_id,
        total_cash_amount,
        handover_amount,
        remaining_cash_amount,
        actor=None,
        notes: str = '',
        ip_address: str | None = None,
    ) -> CashHandover:
        """
        Record cash handed to a financier. The caller's total and handover
        amount are authoritative: an inconsistent remainder is replaced by
        total - handover. The total is not compared with current_balance().
        """
        center = _lock_center(center_id)
        try:
            financier = Financier.objects.get(pk=financier_id)
        except Financier.DoesNotExist:
            raise ResourceNotFoundError(detail='Financier invalide.')
        if not financier.is_active:
            raise BusinessRuleViolation(detail='Ce financier est inactif.')
        if financier.hospital_center_id != center.pk:
            raise BusinessRuleViolation(detail="Ce financier n'est pas rattaché à ce centre.")

        total = Decimal(str(total_cash_amount))
        handed = Decimal(str(handover_amount))
        remaining = Decimal(str(remaining_cash_amount))
        if total < 0 or handed < 0 or remaining < 0:
            raise BusinessRuleViolation(detail='Les montants ne peuvent pas être négatifs.')
        if handed > total:
            raise BusinessRuleViolation(
                detail='Le montant remis ne peut pas être supérieur au montant total en caisse.',
            )
        if total != handed + remaining:
            logger.warning(
                'CashLedgerService.remaining_recomputed center=%s given=%s computed=%s',
                center.pk, remaining, total - handed,
            )
            remaining = total - handed

        handover = CashHandover.objects.create(
            hospital_center=center,
            financier=financier,
            handover_date=clock.now(),
            total_cash_amount=total,
            handover_amount=handed,
            remaining_cash_amount=remaining,
            handed_over_by=_real_user(actor),
            notes=(notes or '').strip(),
            created_by=_real_user(actor),
        )
        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_CASH_HANDOVER,
            model_name='CashHandover',
            object_id=str(handover.pk),
            new_values={
                'financier_id': str(financier.pk),
                'total_cash_amount': str(total),
                'handover_amount': str(handed),
                'remaining_cash_amount': str(remaining),
            },
            description=f"Remise d'espèces de {handed:,.0f} FCFA au financier {financier.name}",
            ip_address=ip_address,
        )
        logger.info(
            'CashLedgerService.handover_created %s center=%s amount=%s remaining=%s',
            handover.pk, center.pk, handed, remaining,
        )
        return handover

    @staticmethod
    def list_handovers(
        *,
        financier_id=None,
        center_id=None,
        handed_over_by_id=None,
        from_date=None,
        to_date=None,
        min_amount=None,
        max_amount=None,
    ) -> QuerySet:
        qs = CashHandover.objects.select_related('financier', 'hospital_center', 'handed_over_by')
        if financier_id:
            qs = qs.filter(financier_id=financier_id)
        if center_id:
            qs = qs.filter(hospital_center_id=center_id)
        if handed_over_by_id:
            qs = qs.filter(handed_over_by_id=handed_over_by_id)
        if from_date:
            qs = qs.filter(handover_date__gte=_as_datetime(from_date, end=False))
        if to_date:
            qs = qs.filter(handover_date__lte=_as_datetime(to_date, end=True))
        if min_amount is not None:
            qs = qs.filter(handover_amount__gte=min_amount)
        if max_amount is not None:
            qs = qs.filter(handover_amount__lte=max_amount)
        return qs.order_by('-handover_date', '-created_at', '-id')


# ---------------------------------------------------------------------------
# Financiers
# ---------------------------------------------------------------------------

def _assert_unique_financier(name: str, center_id, exclude_id=None, message='') -> None:
    qs = Financier.objects.filter(name__iexact=name, hospital_center_id=center_id)
    if exclude_id is not None:
        qs = qs.exclude(pk=exclude_id)
    if qs.exists():
        raise DuplicateResourceError(detail=message)


class FinancierService:

    @staticmethod
    def active_financiers(center_id) -> QuerySet:
        return Financier.objects.filter(hospital_center_id=center_id, is_active=True).order_by('name')

    @staticmethod
    @guard_write('FinancierService.create_financier')
    @transaction.atomic
    def create_financier(*, center_id, name: str, contact_info: str = '', actor=None) -> Financier:
        center = _get_center(center_id)
        name = (name or '').strip()
        _assert_unique_financier(name, center.pk, message='Un financier avec ce nom existe déjà dans ce centre.')

        financier = Financier.objects.create(
            name=name,
            hospital_center=center,
            contact_info=(contact_info or '').strip(),
            created_by=_real_user(actor),
        )
        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_CREATE,
            model_name='Financier',
            object_id=str(financier.pk),
            new_values=AuditService.snapshot(financier),
            description=f'Création du financier {financier.name}',
        )
        return financier

    @staticmethod
    @guard_write('FinancierService.update_financier')
    @transaction.atomic
    def update_financier(*, financier_id, actor=None, **fields) -> Financier:
        try:
            financier = Financier.objects.select_for_update().get(pk=financier_id)
        except Financier.DoesNotExist:
            raise ResourceNotFoundError(detail='Financier introuvable.')

        old_snapshot = AuditService.snapshot(financier)
        if 'name' in fields:
            name = (fields['name'] or '').strip()
            _assert_unique_financier(
                name, financier.hospital_center_id, exclude_id=financier.pk,
                message='Un autre financier avec ce nom existe déjà dans ce centre.',
            )
            financier.name = name
        if 'contact_info' in fields:
            financier.contact_info = (fields['contact_info'] or '').strip()
        financier.updated_by = _real_user(actor)
        financier.save()

        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_UPDATE,
            model_name='Financier',
            object_id=str(financier.pk),
            old_values=old_snapshot,
            new_values=AuditService.snapshot(financier),
        )
        return financier

    @staticmethod
    @guard_write('FinancierService.set_active_status')
    @transaction.atomic
    def set_active_status(*, financier_id, is_active: bool, actor=None) -> Financier:
        try:
            financier = Financier.objects.select_for_update().get(pk=financier_id)
        except Financier.DoesNotExist:
            raise ResourceNotFoundError(detail='Financier introuvable.')
        if financier.is_active == is_active:
            return financier

        financier.is_active = is_active
        financier.updated_by = _real_user(actor)
        financier.save(update_fields=['is_active', 'updated_by', 'updated_at'])
        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_STATUS_CHANGE,
            model_name='Financier',
            object_id=str(financier.pk),
            old_values={'is_active': not is_active},
            new_values={'is_active': is_active},
        )
        return financier


# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------

def _apply_to_episode(episode_id, amount: Decimal) -> None:
    """Add (or with a negative amount, reverse) a payment on a care episode."""
    episode = CareEpisode.objects.select_for_update().get(pk=episode_id)
    episode.amount_paid += amount
    episode.remaining_balance = max(ZERO, episode.total_cost - episode.amount_paid)
    episode.save(update_fields=['amount_paid', 'remaining_balance', 'updated_at'])


class PaymentService:

    @staticmethod
    @guard_write('PaymentService.record_payment')
    @transaction.atomic
    def record_payment(
        *,
        reference_type: str,
        reference_id,
        center_id,
        payment_method_id,
        amount,
        patient_id=None,
        transaction_reference: str = '',
        notes: str = '',
        actor=None,
    ) -> Payment:
        if reference_type not in Payment.ReferenceType.values:
            raise BusinessRuleViolation(detail='Type de référence invalide.')
        amount = Decimal(str(amount))
        if amount <= 0:
            raise BusinessRuleViolation(detail='Le montant doit être positif.')
        try:
            method = PaymentMethod.objects.get(pk=payment_method_id, is_active=True)
        except PaymentMethod.DoesNotExist:
            raise ResourceNotFoundError(detail='Méthode de paiement invalide.')

        reference_model = CareEpisode if reference_type == Payment.ReferenceType.CARE_EPISODE else Examination
        if not reference_model.objects.filter(pk=reference_id).exists():
            raise ResourceNotFoundError(detail=f"La référence {reference_type} #{reference_id} n'existe pas.")
        if patient_id and not Patient.objects.filter(pk=patient_id).exists():
            raise ResourceNotFoundError(detail='Patient invalide.')
        center = _get_center(center_id)

        payment = Payment.objects.create(
            reference_type=reference_type,
            reference_id=reference_id,
            patient_id=patient_id,
            hospital_center=center,
            payment_method=method,
            amount=amount,
            payment_date=clock.now(),
            received_by=_real_user(actor),
            transaction_reference=(transaction_reference or '').strip(),
            notes=(notes or '').strip(),
            created_by=_real_user(actor),
        )
        if reference_type == Payment.ReferenceType.CARE_EPISODE:
            _apply_to_episode(reference_id, amount)

        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_CREATE,
            model_name='Payment',
            object_id=str(payment.pk),
            new_values={
                'reference_type': reference_type,
                'reference_id': str(reference_id),
                'amount': str(amount),
                'payment_method_id': str(method.pk),
            },
            description=f'Paiement de {amount:,.0f} FCFA créé pour {reference_type} #{reference_id}',
        )
        logger.info(
            'PaymentService.payment_recorded %s center=%s ref=%s:%s amount=%s',
            payment.pk, center.pk, reference_type, reference_id, amount,
        )
        return payment

    @staticmethod
    @guard_write('PaymentService.cancel_payment')
    @transaction.atomic
    def cancel_payment(*, payment_id, reason: str, actor=None) -> Payment:
        """Void a payment: it leaves the cash balance and the episode balance."""
        reason = (reason or '').strip()
        if not reason:
            raise BusinessRuleViolation(detail="Le motif d'annulation est obligatoire.")
        try:
            payment = Payment.objects.select_for_update().get(pk=payment_id)
        except Payment.DoesNotExist:
            raise ResourceNotFoundError(detail='Paiement introuvable.')
        if payment.is_cancelled:
            raise BusinessRuleViolation(detail='Ce paiement est déjà annulé.')

        original_notes = payment.notes or ''
        payment.notes = f'{CANCELLED_PAYMENT_MARKER} {reason}\nNotes originales: {original_notes}'
        payment.updated_by = _real_user(actor)
        payment.save(update_fields=['notes', 'updated_by', 'updated_at'])

        if payment.reference_type == Payment.ReferenceType.CARE_EPISODE:
            _apply_to_episode(payment.reference_id, -payment.amount)

        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_PAYMENT_CANCEL,
            model_name='Payment',
            object_id=str(payment.pk),
            old_values={'notes': original_notes, 'amount': str(payment.amount)},
            new_values={'reason': reason},
            description=f'Paiement {payment.pk} annulé: {reason}',
        )
        logger.warning('PaymentService.payment_cancelled %s amount=%s', payment.pk, payment.amount)
        return payment
