"""
ccswitch - Configuration Store

JSON persistence of channel definitions and default settings.

The router never touches this module; the CLI loads a Config, hands the
router `config.registry()` and `config.settings()`, and saves changes back.

File location (first match):
    $CCSWITCH_CONFIG
    $XDG_CONFIG_HOME/ccswitch/config.json
    ~/.config/ccswitch/config.json

File format:
    {
      "channels": {
        "primary": {"name": "primary", "url": "...", "api_key": "...",
                    "model": "gpt-4", "enabled": true, "priority": 0}
      },
      "default_model": null,
      "timeout_seconds": 30,
      "retry_attempts": 3
    }
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .core.errors import ConfigError
from .core.models import Channel, Settings
from .observability.logging import get_logger
from .routing.registry import ChannelRegistry


logger = get_logger(__name__)

CONFIG_DIR_NAME = "ccswitch"
CONFIG_FILE_NAME = "config.json"


def default_config_path() -> Path:
    explicit = os.getenv("CCSWITCH_CONFIG", "").strip()
    if explicit:
        return Path(explicit).expanduser()

    xdg = os.getenv("XDG_CONFIG_HOME", "").strip()
    base = Path(xdg).expanduser() if xdg else Path.home() / ".config"
    return base / CONFIG_DIR_NAME / CONFIG_FILE_NAME


@dataclass
class Config:
    """In-memory form of the configuration file."""
    channels: Dict[str, Channel] = field(default_factory=dict)
    default_model: Optional[str] = None
    timeout_seconds: float = 30.0
    retry_attempts: int = 3
    probe_before_request: bool = True

    def registry(self) -> ChannelRegistry:
        return ChannelRegistry(self.channels.values())

    def settings(self, **overrides: Any) -> Settings:
        values = {
            "default_model": self.default_model,
            "timeout_seconds": self.timeout_seconds,
            "retry_attempts": self.retry_attempts,
            "probe_before_request": self.probe_before_request,
        }
        values.update(overrides)
        return Settings(**values)

    def replace_channels(self, registry: ChannelRegistry):
        self.channels = {channel.name: channel for channel in registry.all()}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "channels": {name: ch.to_dict() for name, ch in sorted(self.channels.items())},
            "default_model": self.default_model,
            "timeout_seconds": self.timeout_seconds,
            "retry_attempts": self.retry_attempts,
            "probe_before_request": self.probe_before_request,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        if not isinstance(data, dict):
            raise ConfigError("Config file must contain a JSON object")

        raw_channels = data.get("channels") or {}
        if not isinstance(raw_channels, dict):
            raise ConfigError("'channels' must be an object keyed by channel name")

        channels: Dict[str, Channel] = {}
        for key, entry in raw_channels.items():
            if not isinstance(entry, dict):
                raise ConfigError(f"Channel '{key}' must be an object")
            entry = {"name": key, **entry}
            if entry["name"] != key:
                raise ConfigError(
                    f"Channel key '{key}' does not match its name '{entry['name']}'"
                )
            channels[key] = Channel.from_dict(entry)

        probe = data.get("probe_before_request", True)
        if not isinstance(probe, bool):
            raise ConfigError(f"'probe_before_request' must be true or false, got {probe!r}")

        try:
            timeout_seconds = float(data.get("timeout_seconds", 30))
            retry_attempts = int(data.get("retry_attempts", 3))
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid setting in config file: {e}") from e

        config = cls(
            channels=channels,
            default_model=data.get("default_model"),
            timeout_seconds=timeout_seconds,
            retry_attempts=retry_attempts,
            probe_before_request=probe,
        )
        # Validate settings and channel invariants eagerly
        config.settings()
        config.registry()
        return config


class ConfigStore:
    """
    Loads and saves the configuration file.

    A missing file is created with default contents on first load.
    """

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path = Path(path).expanduser() if path else default_config_path()

    def load(self) -> Config:
        if not self.path.exists():
            logger.info(f"Creating default config at {self.path}")
            config = Config()
            self.save(config)
            return config

        try:
            content = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Failed to read config file: {e}") from e

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Failed to parse config file: {e}") from e

        return Config.from_dict(data)

    def save(self, config: Config):
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp_path.write_text(
                json.dumps(config.to_dict(), indent=2, ensure_ascii=False),
                encoding="utf-8",
            )
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise ConfigError(f"Failed to write config file: {e}") from e

    # ============================================================
    # Channel management
    # ============================================================

    def add_channel(self, channel: Channel) -> Config:
        """
        Raises:
            DuplicateChannelError: a channel with this name exists
        """
        config = self.load()
        registry = config.registry()
        registry.insert(channel)
        config.replace_channels(registry)
        self.save(config)
        return config

    def remove_channel(self, name: str) -> Channel:
        """
        Raises:
            ChannelNotFoundError: no channel with this name
        """
        config = self.load()
        registry = config.registry()
        removed = registry.remove(name)
        config.replace_channels(registry)
        self.save(config)
        return removed

    def update_channel(self, channel_name: str, **changes: Any) -> Channel:
        """
        Update fields of an existing channel in place.

        Raises:
            ChannelNotFoundError: no channel with this name
            InvalidChannelError: the change would rename or invalidate it,
                or names an unknown field
        """
        config = self.load()
        registry = config.registry()
        updated = registry.update(channel_name, lambda channel: channel.replace(**changes))
        config.replace_channels(registry)
        self.save(config)
        return updated
