"""Configuration for Redis, Celery, Socket.IO and the stream pipeline."""
