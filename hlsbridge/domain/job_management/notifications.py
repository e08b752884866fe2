"""
Job Notification Hub

Registry of per-job subscriber callbacks and process-wide listeners.
Dispatches job snapshots synchronously while isolating subscriber failures
from the caller.
"""

import logging
import queue
from threading import Lock
from typing import Callable, Dict, Iterator, List, Optional

from .entities import StreamJob

logger = logging.getLogger(__name__)

JobCallback = Callable[[StreamJob], None]
Unsubscribe = Callable[[], None]


class SubscriptionRegistry:
    """
    Registry mapping job ids to subscriber callbacks.

    Thread-safe. Callbacks are invoked outside the lock, each with its own
    exception guard, so a failing observer never affects other observers
    or the update that triggered the notification.
    """

    def __init__(self):
        self._subscribers: Dict[str, List[JobCallback]] = {}
        self._listeners: List[JobCallback] = []
        self._lock = Lock()

    def subscribe(self, job_id: str, callback: JobCallback) -> Unsubscribe:
        """
        Register a callback for one job.

        Args:
            job_id: Job identifier
            callback: Called with every updated snapshot of the job

        Returns:
            Callable removing exactly this registration. Calling it again
            is a no-op.
        """
        with self._lock:
            self._subscribers.setdefault(job_id, []).append(callback)

        removed = False

        def unsubscribe() -> None:
            nonlocal removed
            with self._lock:
                if removed:
                    return
                removed = True
                callbacks = self._subscribers.get(job_id)
                if callbacks is None:
                    return
                # Identity match so a callback registered twice loses only one slot
                for position, registered in enumerate(callbacks):
                    if registered is callback:
                        del callbacks[position]
                        break
                if not callbacks:
                    del self._subscribers[job_id]

        return unsubscribe

    def add_listener(self, callback: JobCallback) -> Unsubscribe:
        """Register a callback receiving updates of every job."""
        with self._lock:
            self._listeners.append(callback)

        def remove() -> None:
            with self._lock:
                if callback in self._listeners:
                    self._listeners.remove(callback)

        return remove

    def notify(self, job: StreamJob) -> None:
        """
        Deliver a snapshot to the job's subscribers and to all listeners.

        Args:
            job: Snapshot to deliver
        """
        with self._lock:
            callbacks = list(self._subscribers.get(job.job_id, ()))
            callbacks.extend(self._listeners)

        for callback in callbacks:
            try:
                callback(job)
            except Exception as e:
                # Observers must not break the update path
                logger.error(
                    f"Error in subscriber {getattr(callback, '__name__', callback)!r} "
                    f"for job {job.job_id}: {e}",
                    exc_info=True,
                )

    def drop(self, job_id: str) -> None:
        """Remove every subscription for a job."""
        with self._lock:
            self._subscribers.pop(job_id, None)

    def subscriber_count(self, job_id: str) -> int:
        with self._lock:
            return len(self._subscribers.get(job_id, ()))


class QueueSubscriber:
    """
    Subscriber that buffers snapshots in a bounded queue.

    Use it for slow consumers (streaming responses, socket writers): the
    update path only ever performs a non-blocking put. When the buffer is
    full the oldest pending snapshot is discarded; terminal snapshots are
    always kept.
    """

    def __init__(self, maxsize: int = 64):
        self._queue: "queue.Queue[StreamJob]" = queue.Queue(maxsize=maxsize)
        self._lock = Lock()

    def __call__(self, job: StreamJob) -> None:
        with self._lock:
            while True:
                try:
                    self._queue.put_nowait(job)
                    return
                except queue.Full:
                    try:
                        self._queue.get_nowait()
                    except queue.Empty:
                        pass

    def updates(self, timeout: Optional[float] = None) -> Iterator[StreamJob]:
        """
        Yield buffered snapshots until a terminal one has been yielded.

        Args:
            timeout: Maximum seconds to wait for the next snapshot; the
                iterator ends early when it expires

        Yields:
            Job snapshots in delivery order
        """
        while True:
            try:
                job = self._queue.get(timeout=timeout)
            except queue.Empty:
                return
            yield job
            if job.is_terminal():
                return
