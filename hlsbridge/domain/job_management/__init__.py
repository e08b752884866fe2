"""
Job Management Domain

Stream job records, the state machine, progress monotonicity and
subscriber notifications.
"""

from .entities import InvalidTransitionError, StreamJob
from .notifications import QueueSubscriber, SubscriptionRegistry
from .repositories import JobRepository
from .services import JobNotFoundError, JobStateError, JobStore
from .value_objects import FileInfo, JobStatus

__all__ = [
    'StreamJob',
    'JobStatus',
    'FileInfo',
    'JobStore',
    'JobRepository',
    'SubscriptionRegistry',
    'QueueSubscriber',
    'JobNotFoundError',
    'JobStateError',
    'InvalidTransitionError',
]
