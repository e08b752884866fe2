"""Celery tasks: stream pipeline runs and the periodic expiry sweep."""
