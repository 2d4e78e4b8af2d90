"""
Exception classes for UI action emission and handling.

Two families live here:

* ``ActionDefectError`` subclasses describe programming defects (double
  reservation, double fulfilment, emitting on a closed channel, ...). They are
  only *raised* in debug mode; otherwise they are logged and the operation
  degrades to a ``None`` result. See ``ui_actionable.core.defects``.
* ``SubscriptionDisposedError`` describes plain misuse and is always raised.
"""

from typing import Any, Optional


class UiActionError(RuntimeError):
    """
    Base exception for all UI action errors.

    Carries the channel and action the error relates to so that log lines
    and tracebacks point at the offending emission.
    """

    def __init__(self, message: str, channel_id: Optional[str] = None, action_id: Optional[str] = None):
        super().__init__(message)
        self.channel_id = channel_id
        self.action_id = action_id

    def __str__(self) -> str:
        base_msg = super().__str__()

        context_parts = []
        if self.channel_id:
            context_parts.append(f"channel={self.channel_id}")
        if self.action_id:
            context_parts.append(f"action={self.action_id}")

        if context_parts:
            return f"{base_msg} ({', '.join(context_parts)})"
        return base_msg


class ActionDefectError(UiActionError, AssertionError):
    """
    A programming defect in how a channel, envelope or subscription is used.

    Subclasses ``AssertionError`` so debug-mode failures read like the failed
    assertions they stand for.
    """
    pass


class ChannelClosedError(ActionDefectError):
    """Raised when an action is emitted on a channel that was already closed."""
    pass


class DoubleReservationError(ActionDefectError):
    """
    Raised when result-writing rights are requested twice for one action.

    Two holders completing the same result slot would race, so only the first
    request is ever granted.
    """
    pass


class DoubleFulfillmentError(ActionDefectError):
    """Raised when a result slot is written after it was fulfilled or abandoned."""
    pass


class SlotNotReservedError(ActionDefectError):
    """Raised when a result slot is written without reserving it first."""
    pass


class ResultTypeMismatchError(ActionDefectError):
    """
    Raised when the value an action was completed with is not of the type
    the emitter expects.
    """

    def __init__(
        self,
        message: str,
        expected: Any = None,
        actual: Any = None,
        channel_id: Optional[str] = None,
        action_id: Optional[str] = None,
    ):
        super().__init__(message, channel_id=channel_id, action_id=action_id)
        self.expected = expected
        self.actual = actual


class ReentrantDetachError(ActionDefectError):
    """Raised when a subscription detaches itself from inside its own action callback."""
    pass


class SubscriptionDisposedError(UiActionError):
    """Raised when a disposed subscription is attached again."""
    pass


__all__ = [
    'UiActionError',
    'ActionDefectError',
    'ChannelClosedError',
    'DoubleReservationError',
    'DoubleFulfillmentError',
    'SlotNotReservedError',
    'ResultTypeMismatchError',
    'ReentrantDetachError',
    'SubscriptionDisposedError',
]
