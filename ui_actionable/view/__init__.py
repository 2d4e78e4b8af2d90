from .actions_listener import ActionsListener

__all__ = ['ActionsListener']
