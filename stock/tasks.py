"""
Stock — Celery Tasks

Periodic threshold scan. Registered with Celery Beat through
CELERY_BEAT_SCHEDULE (daily, STOCK_ALERT_CHECK_HOUR).

@file stock/tasks.py
"""

import logging
from collections import Counter

from celery import shared_task

logger = logging.getLogger('hospitrack')


@shared_task(name='stock.check_stock_thresholds')
def check_stock_thresholds_task(center_id=None):
    """
    Compute current alerts (optionally for one centre) and log a
    per-level summary; out-of-stock rows are logged individually.
    """
    from .services import StockLevel, StockService

    alerts = StockService.get_stock_alerts(center_id=center_id)
    counts = Counter(str(alert.level) for alert in alerts)
    for alert in alerts:
        if alert.level == StockLevel.OUT_OF_STOCK:
            logger.warning(
                'check_stock_thresholds: %s out of stock at %s.',
                alert.product_name, alert.hospital_center_name,
            )
    logger.info(
        'check_stock_thresholds_task completed: %d alerts (%s).',
        len(alerts), ', '.join(f'{k}={v}' for k, v in sorted(counts.items())) or 'none',
    )
    return {
        'total': len(alerts),
        'out_of_stock': counts.get(StockLevel.OUT_OF_STOCK.value, 0),
        'low': counts.get(StockLevel.LOW.value, 0),
        'warning': counts.get(StockLevel.WARNING.value, 0),
    }
