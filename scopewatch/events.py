"""Change event delivered to subscribers and callback listeners."""

from typing import Any, NamedTuple


class ChangeEvent(NamedTuple):
    """
    An ``(old, new)`` pair produced when a write handle is released and the
    tracked value no longer equals the snapshot taken when it was acquired.

    Being a tuple, an event unpacks and compares like one:

        old, new = event
        assert event == (5, 7)
    """

    old: Any
    new: Any
