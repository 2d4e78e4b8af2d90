# ui_actionable/view/actions_listener.py
"""
View-side handling of UI actions emitted by a ``UiActionableMixin`` holder.

Whenever the holder calls ``emit_ui_action``, ``listener`` is called with the
holder's current state and the action. Present a dialog, navigate, show a
notification... whatever the action asks for.

Passing a result back
---------------------
Build the listener with ``ActionsListener.completable``. The callback then
also receives a ``complete`` function; calling it resolves the holder's
``emit_ui_action`` call::

    async def confirm(state, action, complete):
        confirmed = await dialogs.confirm_login(action.user)
        complete(confirmed)

    listener = ActionsListener.completable(confirm, discover=lambda: scope.get(LoginHolder))
    listener.did_change_dependencies()
    ...
    listener.dispose()

If the view is disposed before ``complete`` is called, the holder's call
resolves with ``None``.

Finding the holder
------------------
Pass ``holder`` explicitly or a ``discover`` callable that looks the current
holder up. The hosting view calls ``did_change_dependencies`` /
``did_update`` whenever that answer may have changed; the listener only
re-subscribes when it got a different holder instance.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Union

from ui_actionable.core.defects import report_defect
from ui_actionable.core.exceptions import DoubleFulfillmentError
from ui_actionable.core.state_holder import UiActionableMixin
from ui_actionable.infrastructure.action_channel.subscription import ActionSubscription

__all__ = ['ActionsListener', 'UiActionCallback', 'CompletableUiActionCallback']
logger = logging.getLogger(__name__)

UiActionCallback = Callable[[Any, Any], Union[None, Awaitable[None]]]
CompleteAction = Callable[..., None]
CompletableUiActionCallback = Callable[[Any, Any, CompleteAction], Union[None, Awaitable[None]]]
HolderDiscovery = Callable[[], UiActionableMixin]


class ActionsListener:
    def __init__(
        self,
        listener: Optional[UiActionCallback] = None,
        *,
        holder: Optional[UiActionableMixin] = None,
        discover: Optional[HolderDiscovery] = None,
        name: Optional[str] = None,
        debug: bool = False,
        _completable_listener: Optional[CompletableUiActionCallback] = None,
    ) -> None:
        if listener is None and _completable_listener is None:
            raise ValueError('ActionsListener needs a listener')
        if holder is None and discover is None:
            raise ValueError('ActionsListener needs either a holder or a discover callable')
        self.listener = listener
        self.completable_listener = _completable_listener
        self._holder = holder
        self._discover = discover
        self._debug = debug
        self._current_holder: Optional[UiActionableMixin] = None

        self._subscription: ActionSubscription[Any] = ActionSubscription(
            listener=self._on_action if listener is not None else None,
            completable_listener=self._on_completable_action if _completable_listener is not None else None,
            name=name or type(self).__name__,
            debug=debug,
        )

    @classmethod
    def completable(
        cls,
        listener: CompletableUiActionCallback,
        *,
        holder: Optional[UiActionableMixin] = None,
        discover: Optional[HolderDiscovery] = None,
        name: Optional[str] = None,
        debug: bool = False,
    ) -> "ActionsListener":
        """Build a listener whose callback can pass a result back to ``emit_ui_action``."""
        return cls(holder=holder, discover=discover, name=name, debug=debug, _completable_listener=listener)

    @property
    def current_holder(self) -> Optional[UiActionableMixin]:
        return self._current_holder

    @property
    def subscription(self) -> ActionSubscription[Any]:
        return self._subscription

    # ------------------------------------------------------------------ #
    # Host lifecycle
    # ------------------------------------------------------------------ #
    def did_change_dependencies(self) -> None:
        """The hosting view's dependencies changed; look the holder up again."""
        self._on_holder_dependency_changed()

    def did_update(self, holder: Optional[UiActionableMixin] = None) -> None:
        """The hosting view was rebuilt, possibly with a different explicit holder."""
        if holder is not None:
            self._holder = holder
        self._on_holder_dependency_changed()

    def dispose(self) -> None:
        self._subscription.dispose()
        self._current_holder = None

    def _on_holder_dependency_changed(self) -> None:
        new_holder = self._holder if self._holder is not None else self._discover()

        # Resubscribe only in case the holder changed.
        if new_holder is self._current_holder:
            return

        logger.debug("[%s] holder changed to %s", self._subscription.name, type(new_holder).__name__)
        self._current_holder = new_holder
        self._subscription.attach(new_holder.action_channel)

    # ------------------------------------------------------------------ #
    # Dispatch
    # ------------------------------------------------------------------ #
    def _on_action(self, action: Any) -> Union[None, Awaitable[None]]:
        return self.listener(self._current_state(), action)

    async def _on_completable_action(self, action: Any) -> Any:
        done: asyncio.Future = asyncio.get_running_loop().create_future()

        def complete(result: Any = None) -> None:
            if done.cancelled():
                # The view went away; nobody is waiting any more.
                return
            if done.done():
                report_defect(
                    DoubleFulfillmentError('complete() was called more than once for the same action'),
                    debug=self._debug,
                    log=logger,
                )
                return
            done.set_result(result)

        outcome = self.completable_listener(self._current_state(), action, complete)
        if not inspect.isawaitable(outcome):
            return await done

        # complete() resolves the emitter even while the callback keeps running.
        callback = asyncio.ensure_future(outcome)
        callback.add_done_callback(lambda t: self._on_callback_done(t, done))
        try:
            return await done
        except asyncio.CancelledError:
            callback.cancel()
            raise

    def _on_callback_done(self, callback: asyncio.Future, done: asyncio.Future) -> None:
        if callback.cancelled():
            if not done.done():
                done.cancel()
            return
        exc = callback.exception()
        if exc is None:
            return
        if done.done():
            logger.error("[%s] completable callback failed after completing: %s", self._subscription.name, exc,
                         exc_info=exc)
        else:
            done.set_exception(exc)

    def _current_state(self) -> Any:
        return getattr(self._current_holder, 'state', None)
