# ui_actionable/core/state_holder.py
from __future__ import annotations

import logging
from typing import Any, Callable, Generic, List, Optional, TypeVar

from ui_actionable.configs.config_loader import load_channel_settings
from ui_actionable.configs.models import ChannelSettings
from ui_actionable.infrastructure.action_channel.memory_action_channel import MemoryActionChannel

__all__ = ['StateHolder', 'UiActionableMixin']
logger = logging.getLogger(__name__)

TState = TypeVar('TState')
TAction = TypeVar('TAction')

StateListener = Callable[[Any], None]


class StateHolder(Generic[TState]):
    """Minimal observable state container (a "cubit")."""

    def __init__(self, initial_state: TState) -> None:
        self._state = initial_state
        self._listeners: List[StateListener] = []
        self._closed = False

    @property
    def state(self) -> TState:
        return self._state

    @property
    def is_closed(self) -> bool:
        return self._closed

    def emit(self, state: TState) -> None:
        if self._closed:
            logger.warning("[%s] state emitted after close was ignored", type(self).__name__)
            return
        self._state = state
        for listener in tuple(self._listeners):
            listener(state)

    def listen(self, listener: StateListener) -> Callable[[], None]:
        """Register a state listener; returns a callable that removes it again."""
        self._listeners.append(listener)

        def _cancel() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass

        return _cancel

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._listeners.clear()


class UiActionableMixin(Generic[TAction]):
    """
    Lets a ``StateHolder`` ask its view to perform a UI action and hand back a result.

    Mix it in before the holder::

        class LoginHolder(UiActionableMixin[LoginAction], StateHolder[LoginState]):
            async def login(self) -> None:
                user = await self._login_use_case()
                confirmed = await self.emit_ui_action(ConfirmLogin(user), result_type=bool)

    Views subscribe with ``ui_actionable.view.ActionsListener``.
    Without ``action_settings`` the channel is configured by
    ``load_channel_settings``, named after the holder class.
    """

    def __init__(self, *args: Any, action_settings: Optional[ChannelSettings] = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        if action_settings is None:
            action_settings = load_channel_settings(overrides={"component_id": f"{type(self).__name__}.actions"})
        self._action_channel = MemoryActionChannel(action_settings)

    @property
    def action_channel(self) -> MemoryActionChannel:
        return self._action_channel

    async def emit_ui_action(self, action: TAction, result_type: Optional[Any] = None) -> Optional[Any]:
        """
        Emit ``action`` to the views currently listening.

        Resolves with the value a completable listener returned, or ``None`` when
        no such listener exists, it went away, or the value is not a
        ``result_type``. Never raises outside debug mode.
        """
        return await self._action_channel.emit(action, result_type=result_type)

    async def close(self) -> None:
        self._action_channel.close()
        await super().close()
