from .action import ActionEnvelope, SlotState

__all__ = ['ActionEnvelope', 'SlotState']
