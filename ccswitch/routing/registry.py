"""
ccswitch - Channel Registry

In-memory set of configured channels with deterministic ordering.

Ordering: enabled channels sorted by (priority ascending, name ascending).
The registry performs no I/O; the config layer builds it and the router
takes a snapshot at the start of every request.
"""

from typing import Callable, Dict, Iterable, Iterator, List, Optional

from ..core.errors import (
    ChannelNotFoundError,
    DuplicateChannelError,
    InvalidChannelError,
)
from ..core.models import Channel


class ChannelRegistry:
    """
    Registry of channels keyed by name.

    Usage:
        registry = ChannelRegistry()
        registry.insert(Channel(name="primary", url="https://api.example.com/v1/chat/completions"))

        for channel in registry.eligible_for("gpt-4"):
            ...
    """

    def __init__(self, channels: Optional[Iterable[Channel]] = None):
        self._channels: Dict[str, Channel] = {}
        for channel in channels or ():
            self.insert(channel)

    @staticmethod
    def _validate(channel: Channel):
        if not channel.name or not channel.name.strip():
            raise InvalidChannelError("Channel name must be non-empty")
        if not channel.url:
            raise InvalidChannelError(f"Channel '{channel.name}' has no url")

    def list(self) -> List[Channel]:
        """Enabled channels in (priority, name) order."""
        return [channel for channel in self.all() if channel.enabled]

    def all(self) -> List[Channel]:
        """Every channel, enabled or not, in (priority, name) order."""
        return sorted(self._channels.values(), key=lambda ch: ch.sort_key)

    def eligible_for(self, model: str) -> List[Channel]:
        """Enabled channels that serve `model` (exact match or no model set)."""
        return [channel for channel in self.list() if channel.serves(model)]

    def get(self, name: str) -> Channel:
        try:
            return self._channels[name]
        except KeyError:
            raise ChannelNotFoundError(name) from None

    def insert(self, channel: Channel):
        self._validate(channel)
        if channel.name in self._channels:
            raise DuplicateChannelError(channel.name)
        self._channels[channel.name] = channel

    def update(self, name: str, mutator: Callable[[Channel], Channel]) -> Channel:
        """
        Replace a channel with `mutator(current)`.

        The mutator may change any field except the name.

        Raises:
            ChannelNotFoundError: no channel named `name`
            InvalidChannelError: the replacement renames or invalidates the channel
        """
        current = self.get(name)
        updated = mutator(current)
        if updated.name != name:
            raise InvalidChannelError(
                f"Cannot rename channel '{name}' to '{updated.name}' via update"
            )
        self._validate(updated)
        self._channels[name] = updated
        return updated

    def remove(self, name: str) -> Channel:
        if name not in self._channels:
            raise ChannelNotFoundError(name)
        return self._channels.pop(name)

    def snapshot(self) -> "ChannelRegistry":
        """Independent copy; channels themselves are immutable."""
        copy = ChannelRegistry()
        copy._channels = dict(self._channels)
        return copy

    def __len__(self) -> int:
        return len(self._channels)

    def __contains__(self, name: object) -> bool:
        return name in self._channels

    def __iter__(self) -> Iterator[Channel]:
        return iter(self.all())
