"""
Celery tasks package.

Scheduled housekeeping for subscriptions. See petcare.core.celery_app for
the beat schedule.
"""
