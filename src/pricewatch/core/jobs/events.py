"""
Progress publishing.

Best-effort, fire-and-forget broadcast of job progress to any number of
observers. Events for a job without observers are dropped; durable state
lives in the job store.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import Any, Callable

from .models import ProgressEvent

logger = logging.getLogger(__name__)

ProgressListener = Callable[[ProgressEvent], Any]

DEFAULT_QUEUE_SIZE = 1000


class Subscription:
    """Queue-backed observer of one job's progress events.

    Usage:
        async with publisher.subscribe(job_id) as events:
            async for event in events:
                ...

    Iteration stops after the terminal event.
    """

    def __init__(self, publisher: "ProgressPublisher", job_id: str, max_queue: int):
        self.job_id = job_id
        self._publisher = publisher
        self._queue: asyncio.Queue[ProgressEvent] = asyncio.Queue(maxsize=max_queue)
        self._finished = False
        self.dropped = 0

    def deliver(self, event: ProgressEvent) -> None:
        """Enqueue an event without blocking, dropping the oldest when full."""
        if self._queue.full():
            self._queue.get_nowait()
            self.dropped += 1
        self._queue.put_nowait(event)

    async def get(self) -> ProgressEvent:
        return await self._queue.get()

    def close(self) -> None:
        """Stop receiving events."""
        self._publisher.unsubscribe(self)

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> ProgressEvent:
        if self._finished:
            raise StopAsyncIteration
        event = await self._queue.get()
        if event.terminal:
            self._finished = True
        return event

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()


class ProgressPublisher:
    """Publish/subscribe registry keyed by job identifier."""

    def __init__(self, max_queue: int = DEFAULT_QUEUE_SIZE) -> None:
        self.max_queue = max_queue
        self._subscriptions: dict[str, list[Subscription]] = defaultdict(list)
        self._listeners: dict[str, list[ProgressListener]] = defaultdict(list)

    def subscribe(self, job_id: str, max_queue: int | None = None) -> Subscription:
        """Attach a queue-backed observer to a job."""
        subscription = Subscription(self, job_id, max_queue or self.max_queue)
        self._subscriptions[job_id].append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        subscriptions = self._subscriptions.get(subscription.job_id)
        if subscriptions and subscription in subscriptions:
            subscriptions.remove(subscription)
            if not subscriptions:
                del self._subscriptions[subscription.job_id]

    def add_listener(self, job_id: str, listener: ProgressListener) -> None:
        """Attach a synchronous callback to a job."""
        self._listeners[job_id].append(listener)

    def remove_listener(self, job_id: str, listener: ProgressListener) -> None:
        listeners = self._listeners.get(job_id)
        if listeners and listener in listeners:
            listeners.remove(listener)
            if not listeners:
                del self._listeners[job_id]

    def observer_count(self, job_id: str) -> int:
        return len(self._subscriptions.get(job_id, ())) + len(self._listeners.get(job_id, ()))

    def release(self, job_id: str) -> int:
        """Drop every subscription and listener of a job.

        Returns:
            Number of registrations removed
        """
        subscriptions = self._subscriptions.pop(job_id, [])
        listeners = self._listeners.pop(job_id, [])
        return len(subscriptions) + len(listeners)

    def publish(self, job_id: str, event: ProgressEvent) -> int:
        """Broadcast an event to the job's observers.

        Never blocks and never raises; a failing observer only affects
        itself. The terminal event of a job is its last: the job's
        observers are released once it has been delivered.

        Returns:
            Number of observers the event was delivered to
        """
        delivered = 0

        for subscription in list(self._subscriptions.get(job_id, ())):
            try:
                subscription.deliver(event)
                delivered += 1
            except Exception:
                logger.exception(
                    "Progress subscriber failed for job %s", job_id,
                    extra={"job_id": job_id},
                )

        for listener in list(self._listeners.get(job_id, ())):
            try:
                listener(event)
                delivered += 1
            except Exception:
                logger.exception(
                    "Progress listener %r failed for job %s", listener, job_id,
                    extra={"job_id": job_id},
                )

        logger.debug(
            "Progress %s %d%%: %s (%d observers)",
            event.status.value,
            event.percent,
            event.message,
            delivered,
            extra={"job_id": job_id},
        )

        if event.terminal:
            self.release(job_id)

        return delivered
