"""
Finance — Filters

Query filters for the handover list. Date bounds cover whole days in the
server time zone.

@file finance/filters.py
"""

import django_filters

from core import clock

from .models import CashHandover


class CashHandoverFilter(django_filters.FilterSet):
    date_from = django_filters.DateFilter(method='filter_date_from')
    date_to = django_filters.DateFilter(method='filter_date_to')
    min_amount = django_filters.NumberFilter(field_name='handover_amount', lookup_expr='gte')
    max_amount = django_filters.NumberFilter(field_name='handover_amount', lookup_expr='lte')

    class Meta:
        model = CashHandover
        fields = ['financier', 'hospital_center', 'handed_over_by']

    def filter_date_from(self, queryset, name, value):
        return queryset.filter(handover_date__gte=clock.start_of_day(value))

    def filter_date_to(self, queryset, name, value):
        return queryset.filter(handover_date__lte=clock.end_of_day(value))
