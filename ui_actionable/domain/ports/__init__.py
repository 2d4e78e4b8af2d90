from .action_channel_port import ActionChannelPort, ActionSubscriberPort

__all__ = ['ActionChannelPort', 'ActionSubscriberPort']
