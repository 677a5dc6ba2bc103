"""Channel adapter registry — pluggable notification dispatch channels.

Provides singleton access to channel adapters. Uses the fake push adapter by
default; a real provider adapter implements PushPort and is installed with
set_channel() at process start.
"""

PUSH = "push"

_channel_instances: dict[str, object] = {}


def get_channel(channel_type: str = PUSH):
    """Return the configured channel adapter (singleton per channel type)."""
    if channel_type not in _channel_instances:
        if channel_type == PUSH:
            from notifications.channel.fake_push import FakePushAdapter

            _channel_instances[channel_type] = FakePushAdapter()
        else:
            raise ValueError(f"Unknown channel type: {channel_type}")

    return _channel_instances[channel_type]


def set_channel(channel_type: str, adapter) -> None:
    _channel_instances[channel_type] = adapter


def reset_channels():
    """Reset all channel singletons (useful for testing)."""
    _channel_instances.clear()
