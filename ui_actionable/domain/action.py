# ui_actionable/domain/action.py
from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Generic, Optional, TypeVar

from ui_actionable.core.defects import report_defect
from ui_actionable.core.exceptions import (
    DoubleFulfillmentError,
    DoubleReservationError,
    SlotNotReservedError,
)

__all__ = ['ActionEnvelope', 'SlotState']
logger = logging.getLogger(__name__)

TAction = TypeVar('TAction')


class SlotState(str, Enum):
    """Where an envelope's result slot is in its one-way lifecycle."""
    UNSET = "unset"
    RESERVED = "reserved"
    FULFILLED = "fulfilled"
    ABANDONED = "abandoned"


_TERMINAL = frozenset({SlotState.FULFILLED, SlotState.ABANDONED})


class ActionEnvelope(Generic[TAction]):
    """
    Wraps an emitted action together with the slot its result is written to.

    * ``reserve()`` hands out writing rights once; the first caller wins.
    * ``fulfill()`` may only be called by the holder of those rights, once.
    * ``abandon()`` releases the emitter with ``None`` and is safe to repeat.

    The slot moves ``unset -> reserved -> fulfilled``, ``unset -> abandoned``
    or ``reserved -> abandoned`` and is never written twice.
    """

    __slots__ = (
        'payload', 'action_id', 'created_at', '_channel_id', '_debug',
        '_state', '_reserved', '_value', '_done', '__weakref__',
    )

    def __init__(self, payload: TAction, *, channel_id: Optional[str] = None, debug: bool = False) -> None:
        self.payload = payload
        self.action_id = f"act_{uuid.uuid4().hex}"
        self.created_at = datetime.now(timezone.utc)
        self._channel_id = channel_id
        self._debug = debug
        self._state = SlotState.UNSET
        self._reserved = False
        self._value: Any = None
        self._done = asyncio.Event()

    # ------------------------------------------------------------------ #
    # State
    # ------------------------------------------------------------------ #
    @property
    def state(self) -> SlotState:
        return self._state

    @property
    def is_reserved(self) -> bool:
        """True once writing rights were granted, even if the slot was abandoned since."""
        return self._reserved

    @property
    def is_done(self) -> bool:
        return self._state in _TERMINAL

    @property
    def result(self) -> Any:
        """Value the slot was fulfilled with; ``None`` while pending or when abandoned."""
        return self._value

    # ------------------------------------------------------------------ #
    # Transitions
    # ------------------------------------------------------------------ #
    def reserve(self) -> bool:
        if self._state is not SlotState.UNSET:
            report_defect(
                DoubleReservationError(
                    f'Result slot already {self._state.value}; requesting it again can complete it twice',
                    channel_id=self._channel_id,
                    action_id=self.action_id,
                ),
                debug=self._debug,
                log=logger,
            )
            return False
        self._state = SlotState.RESERVED
        self._reserved = True
        logger.debug('[%s] %s reserved', self._channel_id, self.action_id)
        return True

    def fulfill(self, value: Any = None) -> None:
        if self._state in _TERMINAL:
            report_defect(
                DoubleFulfillmentError(
                    f'Result slot was already {self._state.value}',
                    channel_id=self._channel_id,
                    action_id=self.action_id,
                ),
                debug=self._debug,
                log=logger,
            )
            return
        if self._state is SlotState.UNSET:
            report_defect(
                SlotNotReservedError(
                    'Result slot must be reserved before it is fulfilled',
                    channel_id=self._channel_id,
                    action_id=self.action_id,
                ),
                debug=self._debug,
                log=logger,
            )
            return
        self._state = SlotState.FULFILLED
        self._value = value
        self._done.set()
        logger.debug('[%s] %s fulfilled with %s', self._channel_id, self.action_id, type(value).__name__)

    def abandon(self) -> bool:
        """Release the emitter with ``None``. Returns False if the slot was already terminal."""
        if self._state in _TERMINAL:
            return False
        self._state = SlotState.ABANDONED
        self._value = None
        self._done.set()
        logger.debug('[%s] %s abandoned', self._channel_id, self.action_id)
        return True

    async def wait(self) -> Any:
        """Wait for a terminal state; cancelling the waiter leaves the slot untouched."""
        await self._done.wait()
        return self._value

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"{self.__class__.__name__}"
            f"(action_id={self.action_id!r}, "
            f"state={self._state.value!r}, "
            f"payload={self.payload!r})"
        )
