"""
scopewatch Errors - Exception Hierarchy
=======================================

Every error raised by scopewatch derives from TrackerError, so callers can
catch the whole family with a single ``except`` clause.

Exclusivity and lifecycle violations (HandleAlreadyActive, HandleReleased,
TrackerClosed) are programming errors surfaced at the call site. The pull-side
errors (ChannelClosed, SubscriptionEmpty, SubscriptionTimeout) are only raised
by the explicit ``get`` calls on a Subscription; iterating a subscription ends
normally when the tracker goes away.
"""


class TrackerError(RuntimeError):
    """Base class for scopewatch errors."""

    pass


# ============================================================================
# WRITE SIDE
# ============================================================================


class HandleAlreadyActive(TrackerError):
    """A write handle is already outstanding for this tracker."""

    pass


class HandleReleased(TrackerError):
    """The write handle was used after it had been released."""

    pass


class TrackerClosed(TrackerError):
    """A mutation was requested on a tracker that has been closed."""

    pass


# ============================================================================
# READ SIDE
# ============================================================================


class ChannelClosed(TrackerError):
    """End of sequence: the channel is closed and nothing is left to read."""

    pass


class SubscriptionEmpty(TrackerError):
    """No event is pending and the channel is still open."""

    pass


class SubscriptionTimeout(SubscriptionEmpty):
    """No event arrived before the timeout elapsed."""

    pass
