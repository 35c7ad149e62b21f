"""
scopewatch - Scoped Change Tracking
===================================

Wrap a value in a Tracker, mutate it through a scoped WriteHandle, and every
listener receives an ``(old, new)`` ChangeEvent whenever the value actually
changed. No manual "notify" call is ever needed.
"""

from .channel import ChangeChannel, Subscription
from .errors import (
    ChannelClosed,
    HandleAlreadyActive,
    HandleReleased,
    SubscriptionEmpty,
    SubscriptionTimeout,
    TrackerClosed,
    TrackerError,
)
from .events import ChangeEvent
from .handle import WriteHandle
from .tracker import Tracker

__all__ = [
    # Core
    "Tracker",
    "WriteHandle",
    "Subscription",
    "ChangeChannel",
    "ChangeEvent",
    # Exceptions
    "TrackerError",
    "HandleAlreadyActive",
    "HandleReleased",
    "TrackerClosed",
    "ChannelClosed",
    "SubscriptionEmpty",
    "SubscriptionTimeout",
]
