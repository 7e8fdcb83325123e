"""Celery workers for queued AI processing jobs."""
