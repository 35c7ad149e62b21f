"""
Memory testing utilities for change tracking.

These utilities help verify that trackers and subscriptions are released
once the caller drops them, and that discarded subscriptions do not linger
in a tracker's channel.

Examples:
    Leak detection:

        >>> def operation():
        ...     tracker = Tracker(0)
        ...     for _ in range(100):
        ...         tracker.listen()
        >>> assert_no_object_leak(operation, 'Subscription')

    Context manager for detailed tracking:

        >>> with MemoryTracker('_SubscriberQueue') as tracker:
        ...     ...
        >>> tracker.assert_no_growth(tolerance=0)
"""

import gc
import weakref
from collections import defaultdict
from typing import Callable, Dict, Optional


def assert_cleaned_up(
    ref: weakref.ref, description: str = "Object should be cleaned up"
) -> None:
    """Assert that the referent of ``ref`` has been garbage collected.

    Args:
        ref: Weak reference to an object the caller no longer holds
        description: Custom description for the assertion failure
    """
    gc.collect()
    assert ref() is None, f"{description}: object was not cleaned up"


def count_types() -> Dict[str, int]:
    """Count instances of each object type currently tracked by the GC.

    Returns:
        Dictionary mapping type names to counts
    """
    gc.collect()
    counts: Dict[str, int] = defaultdict(int)
    for obj in gc.get_objects():
        counts[type(obj).__name__] += 1
    return counts


def assert_no_object_leak(
    operation: Callable[[], None],
    type_name: str,
    tolerance: int = 5,
    description: Optional[str] = None,
) -> None:
    """Assert that an operation doesn't leave objects of a type behind.

    Args:
        operation: Function to execute that should not create persistent objects
        type_name: Name of the object type to monitor (e.g., 'Subscription')
        tolerance: Allowed variance in object count
        description: Custom description for assertion failures
    """
    if description is None:
        description = f"Operation should not leak {type_name} objects"

    initial_count = count_types().get(type_name, 0)
    operation()
    final_count = count_types().get(type_name, 0)

    assert (
        abs(final_count - initial_count) <= tolerance
    ), f"{description}: {type_name} count changed from {initial_count} to {final_count}"


class MemoryTracker:
    """Context manager recording object counts on entry for later comparison."""

    def __init__(self, type_name: Optional[str] = None):
        self.type_name = type_name
        self.initial_counts: Dict[str, int] = {}

    def __enter__(self):
        self.initial_counts = count_types()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        pass

    @property
    def object_growth(self) -> Dict[str, int]:
        """Get the change in object counts since entering the context."""
        growth = {}
        for type_name, final_count in count_types().items():
            initial_count = self.initial_counts.get(type_name, 0)
            if final_count != initial_count:
                growth[type_name] = final_count - initial_count
        return growth

    def assert_no_growth(self, type_name: Optional[str] = None, tolerance: int = 0):
        """Assert the monitored type did not grow beyond ``tolerance``."""
        target_type = type_name or self.type_name
        growth = self.object_growth.get(target_type, 0)
        assert (
            growth <= tolerance
        ), f"{target_type} count grew by {growth} (tolerance: {tolerance})"
