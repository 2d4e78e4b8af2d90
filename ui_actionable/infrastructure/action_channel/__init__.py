from .memory_action_channel import MemoryActionChannel, RecordedAction
from .subscription import ActionSubscription

__all__ = ['MemoryActionChannel', 'RecordedAction', 'ActionSubscription']
