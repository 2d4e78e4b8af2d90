# ui_actionable/infrastructure/action_channel/subscription.py
from __future__ import annotations

import asyncio
import inspect
import logging
import weakref
from typing import Any, Awaitable, Callable, Dict, Generic, Optional, TypeVar, Union

from ui_actionable.core.defects import report_defect
from ui_actionable.core.exceptions import (
    DoubleReservationError,
    ReentrantDetachError,
    SubscriptionDisposedError,
)
from ui_actionable.domain.action import ActionEnvelope
from ui_actionable.domain.ports.action_channel_port import ActionChannelPort

__all__ = ['ActionSubscription', 'ActionListener', 'CompletableActionListener']
logger = logging.getLogger(__name__)

TAction = TypeVar('TAction')

ActionListener = Callable[[Any], Union[None, Awaitable[None]]]
CompletableActionListener = Callable[[Any], Union[Any, Awaitable[Any]]]


class ActionSubscription(Generic[TAction]):
    """
    One consumer's attachment to an action channel.

    ``listener`` sees every action read-only. ``completable_listener`` reserves
    each action's result slot and completes it with its return value; sync and
    async callables are both accepted. Both may be given.

    Every teardown path (``detach``, re-attaching to another channel, channel
    close, ``dispose``) abandons the reservations this subscription still
    holds, so the emitting side is never left waiting on a view that went away.
    """

    def __init__(
        self,
        listener: Optional[ActionListener] = None,
        completable_listener: Optional[CompletableActionListener] = None,
        *,
        name: Optional[str] = None,
        debug: bool = False,
    ) -> None:
        if listener is None and completable_listener is None:
            raise ValueError('ActionSubscription needs a listener, a completable_listener, or both')
        self.name = name or f"subscription_{id(self):x}"
        self._listener = listener
        self._completable_listener = completable_listener
        self._debug = debug
        self._channel: Optional[ActionChannelPort] = None
        self._outstanding: Dict[ActionEnvelope[TAction], Optional[asyncio.Task]] = {}
        self._requested: weakref.WeakSet = weakref.WeakSet()
        self._dispatching = False
        self._disposed = False

    # ------------------------------------------------------------------ #
    # State
    # ------------------------------------------------------------------ #
    @property
    def channel(self) -> Optional[ActionChannelPort]:
        return self._channel

    @property
    def is_attached(self) -> bool:
        return self._channel is not None

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    @property
    def outstanding_count(self) -> int:
        """Reserved actions this subscription has not completed yet."""
        return len(self._outstanding)

    # ------------------------------------------------------------------ #
    # Attachment
    # ------------------------------------------------------------------ #
    def attach(self, channel: ActionChannelPort) -> None:
        if self._disposed:
            raise SubscriptionDisposedError(f"Subscription '{self.name}' was disposed and cannot be attached again")
        if channel is self._channel:
            return

        self.detach()
        if channel.register(self):
            self._channel = channel
            logger.debug("[%s] attached to %r", self.name, channel)

    def detach(self) -> None:
        if self._dispatching:
            report_defect(
                ReentrantDetachError(f"Subscription '{self.name}' detached itself while handling an action"),
                debug=self._debug,
                log=logger,
            )

        channel, self._channel = self._channel, None
        if channel is not None:
            channel.unregister(self)
            logger.debug("[%s] detached from %r", self.name, channel)
        self._sweep()

    def dispose(self) -> None:
        if self._disposed:
            return
        self.detach()
        self._disposed = True
        logger.debug("[%s] disposed", self.name)

    def on_channel_closed(self, channel: ActionChannelPort) -> None:
        if channel is self._channel:
            self._channel = None
        self._sweep()

    # ------------------------------------------------------------------ #
    # Dispatch
    # ------------------------------------------------------------------ #
    def on_action(self, envelope: ActionEnvelope[TAction]) -> None:
        channel = self._channel
        if self._disposed or channel is None:
            # Torn down earlier in the same fan-out.
            logger.debug("[%s] ignoring %s: not attached", self.name, envelope.action_id)
            return
        self._dispatching = True
        try:
            if self._listener is not None:
                self._run_listener(envelope)
            # The plain listener may have closed or left the channel.
            if self._completable_listener is not None and self._channel is channel:
                self._run_completable(envelope)
        finally:
            self._dispatching = False

    def _run_listener(self, envelope: ActionEnvelope[TAction]) -> None:
        outcome = self._listener(envelope.payload)
        if inspect.isawaitable(outcome):
            task = asyncio.ensure_future(outcome)
            task.add_done_callback(lambda t: self._log_failure(t, envelope))

    def _run_completable(self, envelope: ActionEnvelope[TAction]) -> None:
        if envelope in self._requested:
            report_defect(
                DoubleReservationError(
                    f"Subscription '{self.name}' requested the result slot twice",
                    action_id=envelope.action_id,
                ),
                debug=self._debug,
                log=logger,
            )
            return
        self._requested.add(envelope)

        granted = envelope.reserve()
        if granted:
            self._outstanding[envelope] = None

        try:
            outcome = self._completable_listener(envelope.payload)
        except Exception:
            if granted:
                self._release(envelope)
            raise

        if not inspect.isawaitable(outcome):
            if granted:
                self._complete(envelope, outcome)
            return

        task = asyncio.ensure_future(outcome)
        if granted:
            self._outstanding[envelope] = task
            task.add_done_callback(lambda t: self._on_handler_done(t, envelope))
        else:
            task.add_done_callback(lambda t: self._log_failure(t, envelope))

    def _on_handler_done(self, task: asyncio.Task, envelope: ActionEnvelope[TAction]) -> None:
        if envelope not in self._outstanding:
            # Swept while running; the slot was already abandoned.
            self._log_failure(task, envelope)
            return
        if task.cancelled():
            self._release(envelope)
            return
        exc = task.exception()
        if exc is not None:
            logger.error("[%s] completable listener failed for %s: %s", self.name, envelope.action_id, exc,
                         exc_info=exc)
            self._release(envelope)
            return
        self._complete(envelope, task.result())

    def _complete(self, envelope: ActionEnvelope[TAction], result: Any) -> None:
        self._outstanding.pop(envelope, None)
        envelope.fulfill(result)

    def _release(self, envelope: ActionEnvelope[TAction]) -> None:
        self._outstanding.pop(envelope, None)
        envelope.abandon()

    def _sweep(self) -> None:
        if not self._outstanding:
            return
        outstanding = list(self._outstanding.items())
        self._outstanding.clear()
        for envelope, task in outstanding:
            if task is not None and not task.done():
                task.cancel()
            envelope.abandon()
        logger.debug("[%s] abandoned %d outstanding action(s)", self.name, len(outstanding))

    def _log_failure(self, task: asyncio.Task, envelope: ActionEnvelope[TAction]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("[%s] listener failed for %s: %s", self.name, envelope.action_id, exc, exc_info=exc)

    def __repr__(self) -> str:  # pragma: no cover
        return f"{self.__class__.__name__}(name={self.name!r}, attached={self.is_attached})"
