"""
Stock — Views

Read access to inventory rows and the movement ledger, plus the
availability check, manual adjustment, thresholds and alert endpoints.

@file stock/views.py
"""

from django.utils.dateparse import parse_datetime
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from users.models import User
from users.permissions import HasRoleOrReadOnly

from .models import StockInventory, StockMovement
from .serializers import (
    AvailabilityReportSerializer,
    AvailabilityRequestSerializer,
    MovementResultSerializer,
    StockAdjustmentSerializer,
    StockAlertSerializer,
    StockInventoryReadSerializer,
    StockMovementReadSerializer,
    ThresholdSerializer,
)
from .services import StockDemand, StockService


class StockInventoryViewSet(viewsets.ReadOnlyModelViewSet):
    """
    List/retrieve: any authenticated staff member.
    Availability check: any authenticated staff member.
    Adjust / thresholds: super administrators.
    """

    permission_classes = [IsAuthenticated, HasRoleOrReadOnly]
    required_roles = [User.RoleChoices.SUPER_ADMIN]
    serializer_class = StockInventoryReadSerializer
    filterset_fields = ['hospital_center', 'product']
    search_fields = ['product__name']
    ordering_fields = ['current_quantity', 'updated_at']
    ordering = ['product__name']

    def get_queryset(self):
        return StockInventory.objects.select_related('product', 'hospital_center')

    @action(
        detail=False,
        methods=['post'],
        url_path='availability',
        permission_classes=[IsAuthenticated],
    )
    def availability(self, request):
        ser = AvailabilityRequestSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        demands = [
            StockDemand(product_id=item['product_id'], quantity=item['quantity'])
            for item in ser.validated_data['items']
        ]
        report = StockService.check_availability(demands, ser.validated_data['hospital_center'])
        return Response(AvailabilityReportSerializer(report).data)

    @action(detail=False, methods=['post'], url_path='adjust')
    def adjust(self, request):
        ser = StockAdjustmentSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        result = StockService.adjust_stock(
            product_id=ser.validated_data['product_id'],
            center_id=ser.validated_data['hospital_center'],
            quantity_delta=ser.validated_data['quantity_delta'],
            reason=ser.validated_data['reason'],
            actor=request.user,
        )
        return Response(MovementResultSerializer(result).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'], url_path='thresholds')
    def thresholds(self, request, pk=None):
        ser = ThresholdSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        row = StockService.set_thresholds(inventory_id=pk, actor=request.user, **ser.validated_data)
        return Response(StockInventoryReadSerializer(row).data)

    @action(detail=False, methods=['get'], url_path='alerts', pagination_class=None)
    def alerts(self, request):
        """Rows below a normal level; ?hospital_center=<id>&level=LOW."""
        alerts = StockService.get_stock_alerts(
            center_id=request.query_params.get('hospital_center') or None,
            level=request.query_params.get('level') or None,
        )
        return Response(StockAlertSerializer(alerts, many=True).data)


class StockMovementViewSet(viewsets.ReadOnlyModelViewSet):
    """The append-only ledger; ?date_from / ?date_to bound movement_date."""

    permission_classes = [IsAuthenticated]
    serializer_class = StockMovementReadSerializer
    filterset_fields = ['product', 'hospital_center', 'movement_type', 'reference_type', 'reference_id']
    ordering_fields = ['movement_date', 'quantity']
    ordering = ['-movement_date']

    def get_queryset(self):
        qs = StockMovement.objects.select_related('product', 'created_by')
        date_from = parse_datetime(self.request.query_params.get('date_from', '') or '')
        date_to = parse_datetime(self.request.query_params.get('date_to', '') or '')
        if date_from:
            qs = qs.filter(movement_date__gte=date_from)
        if date_to:
            qs = qs.filter(movement_date__lte=date_to)
        return qs
