# ui_actionable/__init__.py
from __future__ import annotations

from ui_actionable.configs.config_loader import ConfigLoader, load_channel_settings
from ui_actionable.configs.models import ChannelSettings
from ui_actionable.core.exceptions import (
    ActionDefectError, ChannelClosedError, DoubleFulfillmentError, DoubleReservationError,
    ReentrantDetachError, ResultTypeMismatchError, SlotNotReservedError, SubscriptionDisposedError,
    UiActionError,
)
from ui_actionable.core.state_holder import StateHolder, UiActionableMixin
from ui_actionable.domain.action import ActionEnvelope, SlotState
from ui_actionable.domain.ports.action_channel_port import ActionChannelPort, ActionSubscriberPort
from ui_actionable.infrastructure.action_channel.memory_action_channel import MemoryActionChannel, RecordedAction
from ui_actionable.infrastructure.action_channel.subscription import ActionSubscription
from ui_actionable.view.actions_listener import ActionsListener

__version__ = "0.1.0"

__all__ = [
    'ActionChannelPort', 'ActionSubscriberPort', 'ActionEnvelope', 'SlotState',
    'MemoryActionChannel', 'RecordedAction', 'ActionSubscription',
    'StateHolder', 'UiActionableMixin', 'ActionsListener',
    'ChannelSettings', 'ConfigLoader', 'load_channel_settings',
    'UiActionError', 'ActionDefectError', 'ChannelClosedError', 'DoubleReservationError',
    'DoubleFulfillmentError', 'SlotNotReservedError', 'ResultTypeMismatchError',
    'ReentrantDetachError', 'SubscriptionDisposedError',
]
