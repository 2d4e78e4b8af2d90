# ui_actionable/infrastructure/action_channel/memory_action_channel.py
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Set

from ui_actionable.configs.models import ChannelSettings
from ui_actionable.core.defects import report_defect
from ui_actionable.core.exceptions import ActionDefectError, ChannelClosedError, ResultTypeMismatchError
from ui_actionable.domain.action import ActionEnvelope, SlotState
from ui_actionable.domain.ports.action_channel_port import ActionChannelPort, ActionSubscriberPort

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RecordedAction:
    ts: float
    action_id: str
    payload: Any


class MemoryActionChannel(ActionChannelPort):
    def __init__(self, settings: Optional[ChannelSettings] = None) -> None:
        self.settings = settings or ChannelSettings()
        self.component_id = self.settings.component_id
        self._subs: List[ActionSubscriberPort] = []
        self._pending: Set[ActionEnvelope[Any]] = set()
        self._history: List[RecordedAction] = []
        self._closed = False

        self._emitted = 0
        self._resolved_with_value = 0
        self._unreserved = 0
        self._abandoned = 0
        self._defects = 0

        logger.info("[%s] constructed (max_history=%s, reservation_ticks=%s, debug=%s)",
                    self.component_id, self.settings.max_history,
                    self.settings.reservation_ticks, self.settings.debug)

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def subscriber_count(self) -> int:
        return len(self._subs)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def register(self, subscriber: ActionSubscriberPort) -> bool:
        if self._closed:
            logger.warning("[%s] refused subscriber %r: channel is closed", self.component_id, subscriber)
            return False
        if subscriber in self._subs:
            return True
        self._subs.append(subscriber)
        logger.info(
            '[%s] SUBSCRIBED %r. Total subscribers: %d.',
            self.component_id,
            subscriber,
            len(self._subs),
        )
        return True

    def unregister(self, subscriber: ActionSubscriberPort) -> None:
        try:
            self._subs.remove(subscriber)
            logger.debug("[%s] unsubscribed %r", self.component_id, subscriber)
        except ValueError:
            pass

    async def emit(self, payload: Any, result_type: Optional[Any] = None) -> Optional[Any]:
        if self._closed:
            self._defect(ChannelClosedError('Cannot emit UI actions after the channel was closed',
                                            channel_id=self.component_id))
            return None

        envelope: ActionEnvelope[Any] = ActionEnvelope(payload, channel_id=self.component_id,
                                                       debug=self.settings.debug)
        self._emitted += 1
        self._record(envelope)
        self._pending.add(envelope)
        try:
            self._dispatch(envelope)

            # Reserving subscribers get to run before we decide nobody is listening.
            for _ in range(self.settings.reservation_ticks):
                await asyncio.sleep(0)

            if not envelope.is_reserved:
                envelope.abandon()
                self._unreserved += 1
                logger.debug("[%s] %s was not reserved, resolving with None", self.component_id, envelope.action_id)
                return None

            result = await envelope.wait()
        finally:
            self._pending.discard(envelope)

        if result is None:
            if envelope.state is SlotState.ABANDONED:
                self._abandoned += 1
            return None

        if result_type is not None and not _is_instance(result, result_type):
            self._defect(ResultTypeMismatchError(
                f'The result of this action was not a {_type_name(result_type)}, but {type(result).__name__}',
                expected=result_type,
                actual=type(result),
                channel_id=self.component_id,
                action_id=envelope.action_id,
            ))
            return None

        self._resolved_with_value += 1
        return result

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True

        abandoned = sum(1 for envelope in list(self._pending) if envelope.abandon())

        subscribers = tuple(self._subs)
        self._subs.clear()
        for subscriber in subscribers:
            try:
                subscriber.on_channel_closed(self)
            except ActionDefectError:
                raise
            except Exception as exc:
                logger.exception("[%s] Error detaching %r on close: %s", self.component_id, subscriber, exc)

        logger.info("[%s] closed (abandoned=%d, detached=%d)", self.component_id, abandoned, len(subscribers))

    def _dispatch(self, envelope: ActionEnvelope[Any]) -> None:
        handlers = tuple(self._subs)
        logger.debug(
            '[%s] PUBLISHING %s. Found %d subscriber(s).',
            self.component_id,
            envelope.action_id,
            len(handlers),
        )
        for i, subscriber in enumerate(handlers):
            if subscriber not in self._subs:
                # Detached, or the channel closed, earlier in this fan-out.
                logger.debug("[%s] Skipping %r for %s: no longer subscribed",
                             self.component_id, subscriber, envelope.action_id)
                continue
            try:
                logger.debug("[%s] Dispatching %s to subscriber #%d (%r)",
                             self.component_id, envelope.action_id, i + 1, subscriber)
                subscriber.on_action(envelope)
            except ActionDefectError:
                raise
            except Exception as exc:
                logger.exception("[%s] Error in subscriber for %s: %s", self.component_id, envelope.action_id, exc)

    def _defect(self, error: ActionDefectError) -> None:
        self._defects += 1
        report_defect(error, debug=self.settings.debug, log=logger)

    def _record(self, envelope: ActionEnvelope[Any]) -> None:
        if self.settings.max_history <= 0:
            return
        self._history.append(RecordedAction(time.time(), envelope.action_id, envelope.payload))
        if len(self._history) > self.settings.max_history:
            self._history.pop(0)

    def history(self) -> List[RecordedAction]:
        return list(self._history)

    def get_stats(self) -> Dict[str, Any]:
        """Get channel statistics."""
        return {
            'subscribers': len(self._subs),
            'closed': self._closed,
            'emitted': self._emitted,
            'resolved_with_value': self._resolved_with_value,
            'unreserved': self._unreserved,
            'abandoned': self._abandoned,
            'defects': self._defects,
            'pending': len(self._pending),
            'history_size': len(self._history),
        }

    def __repr__(self) -> str:  # pragma: no cover
        return f"{self.__class__.__name__}(component_id={self.component_id!r}, closed={self._closed})"


def _type_name(result_type: Any) -> str:
    if isinstance(result_type, tuple):
        return ' | '.join(_type_name(t) for t in result_type)
    return getattr(result_type, '__name__', repr(result_type))


def _is_instance(result: Any, result_type: Any) -> bool:
    """``isinstance`` that does not let a ``bool`` stand in for an ``int``."""
    if not isinstance(result, bool):
        return isinstance(result, result_type)
    types = result_type if isinstance(result_type, tuple) else (result_type,)
    return any(t is not int and isinstance(result, t) for t in types)
