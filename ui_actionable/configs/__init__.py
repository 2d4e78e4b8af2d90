from .config_loader import ConfigLoader, load_channel_settings
from .models import ChannelSettings

__all__ = ['ChannelSettings', 'ConfigLoader', 'load_channel_settings']
