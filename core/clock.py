"""
Core — Clock

Operator-local time. Business timestamps (movements, handovers,
payments, status changes) are taken from here rather than from
timezone.now() so that every displayed date reads in TIME_ZONE.

@file core/clock.py
"""

from datetime import date, datetime, time

from django.utils import timezone


def now() -> datetime:
    return timezone.localtime(timezone.now())


def today() -> date:
    return now().date()


def start_of_day(day: date) -> datetime:
    return timezone.make_aware(datetime.combine(day, time.min))


def end_of_day(day: date) -> datetime:
    return timezone.make_aware(datetime.combine(day, time.max))
