"""
scopewatch Tracker - Change-Tracked Value Container
===================================================

A Tracker owns a single value and tells listeners whenever it changes. It
never asks the mutator to signal anything: all writes go through a scoped
WriteHandle, and the handle works out on release whether the value changed.

    tracker = Tracker({"count": 0}, name="counter")
    changes = tracker.listen()

    with tracker.begin_mutation() as handle:
        handle["count"] += 1

    changes.get_nowait()  # ChangeEvent(old={'count': 0}, new={'count': 1})

Listeners come in two flavours:
- ``listen()`` returns a Subscription, an ordered stream of events consumed
  by iteration (sync or async) on the listener's own schedule.
- ``subscribe(callback)`` registers ``callback(old, new)``, called
  synchronously right after a changed release.

Closing the tracker (``close()``, leaving ``with Tracker(...)``, or garbage
collection) ends every subscription once its queued events are consumed.
"""

import copy
import logging
import operator
import threading
import weakref
from contextlib import contextmanager
from typing import Any, Callable, Generic, Iterator, List, Optional, TypeVar

from .channel import ChangeChannel, Subscription
from .errors import HandleAlreadyActive, TrackerClosed
from .events import ChangeEvent
from .handle import WriteHandle

T = TypeVar("T")

logger = logging.getLogger(__name__)

Copier = Callable[[Any], Any]
Equals = Callable[[Any, Any], bool]


class Tracker(Generic[T]):
    """
    Owns a value and broadcasts ``(old, new)`` pairs when a write handle
    releases it in a changed state.

    Args:
        initial: The value to track.
        name: Label used in ``repr`` and log records.
        copier: Duplicates the value for snapshots and events. Defaults to
            ``copy.deepcopy`` so nested containers are not aliased.
        equals: Decides whether the value changed. Defaults to ``==``.
            ``equals`` and ``copier`` are expected not to raise. If one does
            while a ``with`` block is unwinding from an exception, its error
            replaces the original, which survives only as ``__context__``.
    """

    def __init__(
        self,
        initial: T,
        *,
        name: Optional[str] = None,
        copier: Copier = copy.deepcopy,
        equals: Equals = operator.eq,
    ) -> None:
        self._name = name or "<unnamed>"
        self._value = initial
        self._copier = copier
        self._equals = equals
        self._channel = ChangeChannel(self._name)
        self._callbacks: List[Callable[[T, T], Any]] = []
        self._lock = threading.RLock()
        self._active: Optional[WriteHandle[T]] = None
        self._closed = False
        self._finalizer = weakref.finalize(self, self._channel.close)

    @property
    def name(self) -> str:
        return self._name

    @property
    def value(self) -> T:
        """The current value, as returned by ``read()``. Reading never notifies anyone."""
        return self._value

    def read(self) -> T:
        """
        Return the current value.

        This is the live object, not a copy. Mutating it in place bypasses
        change tracking: nothing is reported, and the next snapshot already
        contains the change. Make every mutation through a write handle.
        """
        return self._value

    @property
    def is_mutating(self) -> bool:
        """True while a write handle is outstanding."""
        return self._active is not None

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def subscriber_count(self) -> int:
        """Number of live subscriptions created by ``listen()``."""
        return self._channel.subscriber_count

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def begin_mutation(self) -> WriteHandle[T]:
        """
        Acquire the write handle. Use the result as a context manager so it
        is released on every exit path.

        Raises:
            HandleAlreadyActive: if another handle has not been released yet.
            TrackerClosed: if the tracker has been closed.
        """
        with self._lock:
            if self._closed:
                raise TrackerClosed(f"tracker '{self._name}' is closed")
            if self._active is not None:
                raise HandleAlreadyActive(
                    f"tracker '{self._name}' already has an active write handle"
                )
            handle = WriteHandle(self)
            self._active = handle
        logger.debug(f"{self._name}: write handle acquired")
        return handle

    @contextmanager
    def mutate(self) -> Iterator[WriteHandle[T]]:
        """Context manager form of ``begin_mutation()``."""
        with self.begin_mutation() as handle:
            yield handle

    def modify(self, fn: Callable[[T], Optional[T]]) -> T:
        """
        Run ``fn`` against the value inside a write handle.

        ``fn`` may change the value in place, or return a replacement. A
        return value of None keeps the (possibly mutated) current value.
        The handle is released even if ``fn`` raises.

        Returns:
            The value after ``fn`` ran.
        """
        with self.begin_mutation() as handle:
            result = fn(handle.value)
            if result is not None:
                handle.value = result
            return handle.value

    def _release_handle(self, handle: WriteHandle[T]) -> None:
        with self._lock:
            if self._active is handle:
                self._active = None

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def listen(self, maxsize: Optional[int] = None) -> Subscription:
        """
        Start a new subscription. It sees every change from now on, never
        earlier ones. On a closed tracker the subscription is already ended.

        Args:
            maxsize: Bound on queued events. When full, new events are
                dropped for this subscriber only. Unbounded by default.
        """
        return self._channel.listen(maxsize)

    def subscribe(self, callback: Callable[[T, T], Any]) -> "Tracker[T]":
        """Call ``callback(old, new)`` after each changed release."""
        with self._lock:
            self._callbacks.append(callback)
        return self

    def unsubscribe(self, callback: Callable[[T, T], Any]) -> None:
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

    def _dispatch(self, event: ChangeEvent) -> None:
        with self._lock:
            callbacks = list(self._callbacks)
        for callback in callbacks:
            try:
                callback(event.old, event.new)
            except Exception:
                logger.exception(f"{self._name}: change callback {callback!r} failed")

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Close the channel. Subscriptions end after draining; idempotent."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._callbacks.clear()
        self._finalizer()

    def __enter__(self) -> "Tracker[T]":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Tracker({self._name!r}, {self._value!r})"
