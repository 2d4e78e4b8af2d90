# ui_actionable/domain/ports/action_channel_port.py
"""
Domain-layer interface for an action channel.

State holders emit through it, subscriptions register with it. Keeping the
contract here lets the view side depend on the port instead of
``MemoryActionChannel``.
"""

from __future__ import annotations

import typing as _t
from typing import Any, Optional, Protocol, runtime_checkable

if _t.TYPE_CHECKING:  # pragma: no cover
    from ui_actionable.domain.action import ActionEnvelope


@runtime_checkable
class ActionSubscriberPort(Protocol):
    """Anything a channel can fan an envelope out to."""

    def on_action(self, envelope: "ActionEnvelope[Any]") -> None:
        ...

    def on_channel_closed(self, channel: "ActionChannelPort") -> None:
        """Called once when the channel closes; the subscriber must drop and sweep."""
        ...


@runtime_checkable
class ActionChannelPort(Protocol):
    """Broadcast source of UI actions owned by a single state holder."""

    @property
    def is_closed(self) -> bool:
        ...

    async def emit(self, payload: Any, result_type: Optional[_t.Any] = None) -> Optional[Any]:
        """
        Publish ``payload`` to every subscriber and wait for a result.

        Resolves with the value a reserving subscriber completed the action
        with, or ``None`` when nobody reserved it, the reservation was
        abandoned, or the value was not a ``result_type``.
        """
        ...

    def register(self, subscriber: ActionSubscriberPort) -> bool:
        ...

    def unregister(self, subscriber: ActionSubscriberPort) -> None:
        ...

    def close(self) -> None:
        ...
