"""
scopewatch Channel - Broadcast of Change Events
===============================================

This module provides the single-producer, multi-subscriber channel that a
Tracker uses to fan out change events.

Every call to ``listen()`` creates a private queue for that subscriber. The
producer appends each event to every live queue and returns immediately; it
never waits on a consumer. Consumers pull from their own queue, either by
blocking iteration on a thread or with ``async for`` under asyncio.

Delivery guarantees:
- Each subscriber sees events in production order.
- A subscriber never sees events produced before it called ``listen()``.
- Closing the channel ends every subscription after its queued events have
  been drained. End of sequence is not an error.

Delivery is best-effort: queues are unbounded unless ``maxsize`` is given, in
which case the newest event is dropped for that subscriber when its queue is
full and a warning is logged.
"""

import asyncio
import logging
import threading
import weakref
from collections import deque
from typing import Any, Deque, List, Optional, Tuple

from .errors import ChannelClosed, SubscriptionEmpty, SubscriptionTimeout
from .events import ChangeEvent

logger = logging.getLogger(__name__)

_Waiter = Tuple[asyncio.AbstractEventLoop, "asyncio.Future[None]"]


def _resolve(future: "asyncio.Future[None]") -> None:
    if not future.done():
        future.set_result(None)


class _SubscriberQueue:
    """Pending events for one subscriber, plus anyone waiting on them."""

    __slots__ = (
        "_events",
        "_maxsize",
        "_cond",
        "_closed",
        "_waiters",
        "dropped",
        "__weakref__",
    )

    def __init__(self, maxsize: Optional[int] = None):
        self._events: Deque[ChangeEvent] = deque()
        self._maxsize = maxsize
        self._cond = threading.Condition(threading.Lock())
        self._closed = False
        self._waiters: List[_Waiter] = []
        self.dropped = 0

    def __len__(self) -> int:
        return len(self._events)

    @property
    def closed(self) -> bool:
        return self._closed

    def put(self, event: ChangeEvent) -> bool:
        """Append an event without blocking. Returns False if it was not queued."""
        with self._cond:
            if self._closed:
                return False
            if self._maxsize is not None and len(self._events) >= self._maxsize:
                self.dropped += 1
                return False
            self._events.append(event)
            self._cond.notify_all()
            waiters = self._take_waiters()
        self._wake(waiters)
        return True

    def close(self, discard: bool = False) -> None:
        """Mark end of sequence. With ``discard`` pending events are thrown away."""
        with self._cond:
            if discard:
                self._events.clear()
            if self._closed:
                return
            self._closed = True
            self._cond.notify_all()
            waiters = self._take_waiters()
        self._wake(waiters)

    def pop(self, block: bool = True, timeout: Optional[float] = None) -> ChangeEvent:
        with self._cond:
            if block and not self._cond.wait_for(
                lambda: self._events or self._closed, timeout
            ):
                raise SubscriptionTimeout(f"no change event within {timeout}s")
            if self._events:
                return self._events.popleft()
            if self._closed:
                raise ChannelClosed("subscription has ended")
            raise SubscriptionEmpty("no change event pending")

    async def pop_async(self) -> ChangeEvent:
        loop = asyncio.get_running_loop()
        while True:
            with self._cond:
                if self._events:
                    return self._events.popleft()
                if self._closed:
                    raise ChannelClosed("subscription has ended")
                waiter: _Waiter = (loop, loop.create_future())
                self._waiters.append(waiter)
            try:
                await waiter[1]
            finally:
                with self._cond:
                    if waiter in self._waiters:
                        self._waiters.remove(waiter)

    def drain(self) -> List[ChangeEvent]:
        with self._cond:
            events = list(self._events)
            self._events.clear()
        return events

    def _take_waiters(self) -> List[_Waiter]:
        waiters, self._waiters = self._waiters, []
        return waiters

    @staticmethod
    def _wake(waiters: List[_Waiter]) -> None:
        for loop, future in waiters:
            try:
                loop.call_soon_threadsafe(_resolve, future)
            except RuntimeError:
                # Event loop already closed; nobody is left to wake.
                continue


class Subscription:
    """
    A listener's handle on the ordered stream of change events.

    Iterate it to consume events; iteration blocks until the next event
    arrives and stops once the tracker has been closed and every queued event
    has been delivered:

        for old, new in tracker.listen():
            ...

    Under asyncio use ``async for`` instead. ``get()``, ``get_nowait()`` and
    ``drain()`` give explicit pull access.

    Closing the subscription, leaving a ``with`` block around it, or dropping
    the last reference to it stops delivery immediately.
    """

    def __init__(self, channel: "ChangeChannel", queue: _SubscriberQueue):
        self._queue = queue
        self._finalizer = weakref.finalize(self, channel._discard, queue)

    def __repr__(self) -> str:
        state = "ended" if self.ended else "open"
        return f"Subscription({state}, pending={len(self._queue)})"

    @property
    def pending(self) -> int:
        """Number of events queued and not yet consumed."""
        return len(self._queue)

    @property
    def dropped(self) -> int:
        """Events discarded because a bounded queue was full."""
        return self._queue.dropped

    @property
    def ended(self) -> bool:
        """True once nothing more will ever be delivered."""
        return self._queue.closed and not len(self._queue)

    def get(self, timeout: Optional[float] = None) -> ChangeEvent:
        """Wait for the next event.

        Raises:
            SubscriptionTimeout: if ``timeout`` elapses first.
            ChannelClosed: if the subscription has ended.
        """
        return self._queue.pop(block=True, timeout=timeout)

    def get_nowait(self) -> ChangeEvent:
        """Return the next pending event without waiting.

        Raises:
            SubscriptionEmpty: if nothing is pending.
            ChannelClosed: if the subscription has ended.
        """
        return self._queue.pop(block=False)

    def drain(self) -> List[ChangeEvent]:
        """Take every pending event without waiting."""
        return self._queue.drain()

    def close(self) -> None:
        """Stop listening. Pending events are discarded."""
        self._finalizer()

    def __iter__(self) -> "Subscription":
        return self

    def __next__(self) -> ChangeEvent:
        try:
            return self._queue.pop(block=True)
        except ChannelClosed:
            raise StopIteration from None

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> ChangeEvent:
        try:
            return await self._queue.pop_async()
        except ChannelClosed:
            raise StopAsyncIteration from None

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()


class ChangeChannel:
    """Producer side of the broadcast. Owned by a single Tracker."""

    def __init__(self, name: str = "<unnamed>"):
        self._name = name
        self._lock = threading.Lock()
        self._queues: List[_SubscriberQueue] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._queues)

    def listen(self, maxsize: Optional[int] = None) -> Subscription:
        """Register a subscriber that sees every event published from now on."""
        if maxsize is not None and maxsize < 1:
            raise ValueError(f"maxsize must be at least 1, got {maxsize}")
        queue = _SubscriberQueue(maxsize)
        count = 0
        with self._lock:
            if self._closed:
                queue.close()
            else:
                self._queues.append(queue)
                count = len(self._queues)
        if count:
            logger.debug(f"{self._name}: subscriber added ({count} active)")
        return Subscription(self, queue)

    def publish(self, event: ChangeEvent) -> int:
        """Queue ``event`` for every subscriber. Returns how many accepted it."""
        with self._lock:
            if self._closed:
                logger.debug(f"{self._name}: publish after close ignored")
                return 0
            queues = list(self._queues)

        delivered = 0
        for queue in queues:
            if queue.put(event):
                delivered += 1
            elif not queue.closed:
                logger.warning(
                    f"{self._name}: subscriber queue full, dropped change event "
                    f"({queue.dropped} dropped so far)"
                )
        logger.debug(f"{self._name}: change event delivered to {delivered} subscribers")
        return delivered

    def close(self) -> None:
        """End every subscription once its queued events are consumed."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            queues, self._queues = self._queues, []
        for queue in queues:
            queue.close()
        logger.debug(f"{self._name}: channel closed, {len(queues)} subscriptions ended")

    def _discard(self, queue: _SubscriberQueue) -> None:
        with self._lock:
            if queue in self._queues:
                self._queues.remove(queue)
        queue.close(discard=True)
