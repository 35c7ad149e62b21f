"""
scopewatch WriteHandle - Scoped Mutation Guard
==============================================

A WriteHandle grants exclusive write access to a tracker's value for the
length of a ``with`` block. It snapshots the value when acquired and, when
released, compares the snapshot against the live value. If they differ, one
ChangeEvent is published; if they are equal, nothing happens.

The comparison is on final state only. Writing a value and then writing the
original back produces no event.

Release happens exactly once, when the ``with`` block exits by any path,
including an exception. A partially applied mutation that left the value
changed is still reported before the exception continues to propagate.

Values with non-reflexive equality (``float("nan")``) always compare as
changed and so always notify.
"""

import logging
import operator
from typing import TYPE_CHECKING, Any, Callable, Generic, Iterator, Optional, TypeVar

from .errors import HandleReleased
from .events import ChangeEvent

if TYPE_CHECKING:
    from .tracker import Tracker

T = TypeVar("T")

logger = logging.getLogger(__name__)


def _inplace(op: Callable[[Any, Any], Any]) -> Callable[["WriteHandle", Any], "WriteHandle"]:
    def method(self: "WriteHandle", other: Any) -> "WriteHandle":
        self.value = op(self.value, other)
        return self

    method.__name__ = f"__{op.__name__}__"
    return method


class WriteHandle(Generic[T]):
    """
    Exclusive, scoped write access to a Tracker's value.

    Obtain one with ``Tracker.begin_mutation()`` and use it as a context
    manager:

        with tracker.begin_mutation() as handle:
            handle.value = 7          # replace the value
            handle.items.append(1)    # attribute access reaches the live value
            handle["key"] = "v"       # so does item access
            handle += 1               # and in-place operators

    Names starting with an underscore belong to the handle, as do its own
    members: ``value``, ``snapshot``, ``changed``, ``released``, ``event``
    and ``release``. Assigning to one of those reserved names (other than
    ``value``) raises AttributeError; reach a field of the same name through
    ``handle.value`` instead. Every other attribute is read from and written
    to the live value.
    """

    def __init__(self, tracker: "Tracker[T]"):
        self._tracker = tracker
        self._snapshot = tracker._copier(tracker._value)
        self._released = False
        self._event: Optional[ChangeEvent] = None

    # ------------------------------------------------------------------
    # Live value access
    # ------------------------------------------------------------------

    @property
    def value(self) -> T:
        """The live value inside the tracker."""
        self._check_active()
        return self._tracker._value

    @value.setter
    def value(self, new_value: T) -> None:
        self._check_active()
        self._tracker._value = new_value

    @property
    def snapshot(self) -> T:
        """A copy of the value as it was when the handle was acquired."""
        return self._tracker._copier(self._snapshot)

    @property
    def changed(self) -> bool:
        """Whether the live value currently differs from the snapshot."""
        return not self._tracker._equals(self._snapshot, self.value)

    @property
    def released(self) -> bool:
        return self._released

    @property
    def event(self) -> Optional[ChangeEvent]:
        """The event published on release, or None if nothing changed."""
        return self._event

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        return getattr(self.value, name)

    def __setattr__(self, name: str, new_value: Any) -> None:
        if name.startswith("_") or name == "value":
            object.__setattr__(self, name, new_value)
        elif any(name in klass.__dict__ for klass in type(self).__mro__):
            raise AttributeError(
                f"'{name}' is reserved by WriteHandle; assign handle.value.{name} instead"
            )
        else:
            setattr(self.value, name, new_value)

    def __getitem__(self, key: Any) -> Any:
        return self.value[key]

    def __setitem__(self, key: Any, item: Any) -> None:
        self.value[key] = item

    def __delitem__(self, key: Any) -> None:
        del self.value[key]

    def __contains__(self, item: Any) -> bool:
        return item in self.value

    def __iter__(self) -> Iterator[Any]:
        return iter(self.value)

    def __len__(self) -> int:
        return len(self.value)

    def __bool__(self) -> bool:
        return bool(self.value)

    __iadd__ = _inplace(operator.iadd)
    __isub__ = _inplace(operator.isub)
    __imul__ = _inplace(operator.imul)
    __itruediv__ = _inplace(operator.itruediv)
    __ifloordiv__ = _inplace(operator.ifloordiv)
    __imod__ = _inplace(operator.imod)
    __ior__ = _inplace(operator.ior)
    __iand__ = _inplace(operator.iand)
    __ixor__ = _inplace(operator.ixor)

    # ------------------------------------------------------------------
    # Release
    # ------------------------------------------------------------------

    def release(self) -> Optional[ChangeEvent]:
        """
        Compare the live value to the snapshot and publish a change event if
        they differ. Only the first call does anything; later calls return
        None.

        Returns:
            The published ChangeEvent, or None if the value was unchanged.
        """
        if self._released:
            logger.debug(f"{self._tracker.name}: handle already released")
            return None
        self._released = True

        tracker = self._tracker
        try:
            live = tracker._value
            if tracker._equals(self._snapshot, live):
                logger.debug(f"{tracker.name}: released unchanged")
            else:
                # Copy the live value so the event does not alias the tracker.
                self._event = ChangeEvent(self._snapshot, tracker._copier(live))
                tracker._channel.publish(self._event)
        finally:
            tracker._release_handle(self)

        if self._event is not None:
            tracker._dispatch(self._event)
        return self._event

    def _check_active(self) -> None:
        if self._released:
            raise HandleReleased(
                f"write handle for '{self._tracker.name}' has already been released"
            )

    def __enter__(self) -> "WriteHandle[T]":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.release()

    def __repr__(self) -> str:
        state = "released" if self._released else "active"
        return f"WriteHandle({self._tracker.name!r}, {state})"
