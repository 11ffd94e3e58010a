"""Celery beat schedule configuration (optional).

Refund execution is event driven (scheduled right after a cancellation
commits), so nothing runs periodically yet. Entries follow the Celery docs
format: {"name": {"task": ..., "schedule": seconds, "kwargs": {...}}}.
"""
from __future__ import annotations

CELERY_BEAT_SCHEDULE: dict = {}
