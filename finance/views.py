"""
Finance — Views

Cash desk endpoints for cashiers and super administrators: payments,
financiers, handovers and the per-centre ledger views
(balance, position, movement history, reconciliation).

@file finance/views.py
"""

from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from centers.serializers import ActiveStatusSerializer
from centers.services import HospitalCenterService
from core.services import AuditService
from users.models import User
from users.permissions import HasRole, HasRoleOrReadOnly

from .filters import CashHandoverFilter
from .models import Financier, Payment, PaymentMethod
from .serializers import (
    CashBalanceSerializer,
    CashHandoverCreateSerializer,
    CashHandoverReadSerializer,
    CashMovementSerializer,
    CashPositionSerializer,
    CashReconciliationSerializer,
    FinancierCreateSerializer,
    FinancierReadSerializer,
    FinancierUpdateSerializer,
    MovementWindowSerializer,
    PaymentCancelSerializer,
    PaymentCreateSerializer,
    PaymentMethodSerializer,
    PaymentReadSerializer,
)
from .services import CashLedgerService, FinancierService, PaymentService

CASH_DESK_ROLES = [User.RoleChoices.CASHIER, User.RoleChoices.SUPER_ADMIN]


class PaymentMethodViewSet(viewsets.ReadOnlyModelViewSet):
    permission_classes = [IsAuthenticated]
    serializer_class = PaymentMethodSerializer
    filterset_fields = ['is_active', 'is_cash_equivalent']
    ordering = ['name']

    def get_queryset(self):
        return PaymentMethod.objects.all()


class FinancierViewSet(viewsets.ModelViewSet):
    permission_classes = [IsAuthenticated, HasRoleOrReadOnly]
    required_roles = CASH_DESK_ROLES
    http_method_names = ['get', 'post', 'patch', 'head', 'options']
    serializer_class = FinancierReadSerializer
    filterset_fields = ['hospital_center', 'is_active']
    search_fields = ['name', 'contact_info']
    ordering = ['name']

    def get_queryset(self):
        return Financier.objects.select_related('hospital_center')

    def create(self, request, *args, **kwargs):
        ser = FinancierCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        financier = FinancierService.create_financier(actor=request.user, **ser.validated_data)
        return Response(FinancierReadSerializer(financier).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, *args, **kwargs):
        ser = FinancierUpdateSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)
        financier = FinancierService.update_financier(
            financier_id=self.get_object().pk, actor=request.user, **ser.validated_data,
        )
        return Response(FinancierReadSerializer(financier).data)

    @action(detail=True, methods=['post'], url_path='status')
    def set_status(self, request, pk=None):
        ser = ActiveStatusSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        financier = FinancierService.set_active_status(
            financier_id=pk,
            is_active=ser.validated_data['is_active'],
            actor=request.user,
        )
        return Response(FinancierReadSerializer(financier).data)

    @action(detail=False, methods=['get'], url_path='active', pagination_class=None)
    def active(self, request):
        """Active financiers of ?hospital_center, the handover form choices."""
        center = HospitalCenterService.get_center(request.query_params.get('hospital_center'))
        financiers = FinancierService.active_financiers(center.pk).select_related('hospital_center')
        return Response(FinancierReadSerializer(financiers, many=True).data)


class PaymentViewSet(mixins.CreateModelMixin, viewsets.ReadOnlyModelViewSet):
    permission_classes = [IsAuthenticated, HasRoleOrReadOnly]
    required_roles = CASH_DESK_ROLES
    serializer_class = PaymentReadSerializer
    filterset_fields = ['hospital_center', 'patient', 'reference_type', 'reference_id', 'payment_method']
    ordering_fields = ['payment_date', 'amount']
    ordering = ['-payment_date']

    def get_queryset(self):
        return Payment.objects.select_related('payment_method', 'received_by')

    def create(self, request, *args, **kwargs):
        ser = PaymentCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        payment = PaymentService.record_payment(actor=request.user, **ser.validated_data)
        return Response(PaymentReadSerializer(payment).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'], url_path='cancel')
    def cancel(self, request, pk=None):
        ser = PaymentCancelSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        payment = PaymentService.cancel_payment(payment_id=pk, actor=request.user, **ser.validated_data)
        return Response(PaymentReadSerializer(payment).data)


class CashHandoverViewSet(mixins.CreateModelMixin, viewsets.ReadOnlyModelViewSet):
    """
    Handovers are insert-only. List filters: ?financier, ?hospital_center,
    ?handed_over_by, ?date_from, ?date_to, ?min_amount, ?max_amount.
    """

    permission_classes = [IsAuthenticated, HasRole]
    required_roles = CASH_DESK_ROLES
    serializer_class = CashHandoverReadSerializer
    filterset_class = CashHandoverFilter

    def get_queryset(self):
        return CashLedgerService.list_handovers()

    def create(self, request, *args, **kwargs):
        ser = CashHandoverCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        handover = CashLedgerService.create_handover(
            actor=request.user,
            ip_address=AuditService.get_client_ip(request),
            **ser.validated_data,
        )
        return Response(CashHandoverReadSerializer(handover).data, status=status.HTTP_201_CREATED)


class CashDeskViewSet(viewsets.ViewSet):
    """Ledger views of one centre's cash desk: /cash-desk/<center_id>/<view>/."""

    permission_classes = [IsAuthenticated, HasRole]
    required_roles = CASH_DESK_ROLES

    @action(detail=True, methods=['get'], url_path='balance')
    def balance(self, request, pk=None):
        center = HospitalCenterService.get_center(pk)
        return Response(CashBalanceSerializer({
            'hospital_center_id': center.pk,
            'current_balance': CashLedgerService.current_balance(center.pk),
        }).data)

    @action(detail=True, methods=['get'], url_path='position')
    def position(self, request, pk=None):
        return Response(CashPositionSerializer(CashLedgerService.cash_position(pk)).data)

    @action(detail=True, methods=['get'], url_path='movements')
    def movements(self, request, pk=None):
        """?date_from / ?date_to (YYYY-MM-DD); defaults to the last 30 days."""
        center = HospitalCenterService.get_center(pk)
        window = MovementWindowSerializer(data=request.query_params)
        window.is_valid(raise_exception=True)
        movements = CashLedgerService.movement_history(
            center.pk,
            from_date=window.validated_data.get('date_from'),
            to_date=window.validated_data.get('date_to'),
        )
        return Response(CashMovementSerializer(movements, many=True).data)

    @action(detail=True, methods=['get'], url_path='reconciliation')
    def reconciliation(self, request, pk=None):
        summary = CashLedgerService.receipts_since_last_handover(pk)
        return Response(CashReconciliationSerializer(summary).data)
