"""
Configuration parser for Unifyer Calendar.

Handles TOML file parsing and default locations.
"""

import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .models import EventType
from .storage import get_default_storage_dir

logger = logging.getLogger(__name__)


@dataclass
class SubscriptionConfig:
    """A subscription declared in the configuration file."""
    name: str
    url: str
    color: Optional[str] = None
    enabled: bool = True


@dataclass
class SyncConfig:
    """Configuration for subscription fetching."""
    timeout: int = 30          # HTTP timeout in seconds
    max_workers: int = 3       # Subscriptions synced in parallel
    user_agent: str = "Unifyer-Calendar/1.0"


@dataclass
class Config:
    """Main configuration container for Unifyer Calendar."""

    storage_dir: Path = field(default_factory=get_default_storage_dir)
    owner: str = "local"                # user/session the stored data belongs to
    timezone: Optional[str] = None      # IANA name; None uses the system offset
    log_level: str = "INFO"
    sync: SyncConfig = field(default_factory=SyncConfig)
    colors: dict[str, str] = field(default_factory=dict)
    subscriptions: list[SubscriptionConfig] = field(default_factory=list)

    @classmethod
    def get_default_config_path(cls) -> Path:
        """Get the default configuration file path."""
        xdg_config = os.environ.get('XDG_CONFIG_HOME', os.path.expanduser('~/.config'))
        return Path(xdg_config) / 'unifyer-calendar' / 'unifyer-calendar.toml'

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> 'Config':
        """
        Load configuration from a TOML file.

        Without an explicit path the default location is used, and a missing
        default file simply yields the defaults.

        Raises:
            FileNotFoundError: an explicitly given file does not exist.
            tomllib.TOMLDecodeError: the file is not valid TOML.
        """
        if config_path is None:
            config_path = cls.get_default_config_path()
            if not config_path.exists():
                logger.debug("No configuration at %s, using defaults", config_path)
                return cls()

        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, 'rb') as f:
            data = tomllib.load(f)

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict) -> 'Config':
        # Parse General section
        general = data.get('General', {})
        storage_dir_str = general.get('storage_dir')
        storage_dir = (
            Path(os.path.expanduser(storage_dir_str)) if storage_dir_str
            else get_default_storage_dir()
        )

        # Parse Sync section
        sync_data = data.get('Sync', {})
        sync = SyncConfig(
            timeout=sync_data.get('timeout', SyncConfig.timeout),
            max_workers=sync_data.get('max_workers', SyncConfig.max_workers),
            user_agent=sync_data.get('user_agent', SyncConfig.user_agent),
        )

        # Parse Colors section, keyed by event type name
        known_types = {t.value for t in EventType}
        colors = {}
        for type_name, color in data.get('Colors', {}).items():
            if type_name in known_types:
                colors[type_name] = color
            else:
                logger.warning("Ignoring color for unknown event type %r", type_name)

        # Parse subscriptions
        # Supports both [Subscription.Name] and [Subscription] with nested sub-tables
        subscriptions = []
        for key, value in data.items():
            if key.startswith('Subscription.') and isinstance(value, dict):
                subscriptions.append(cls._subscription(key.split('.', 1)[1], value))
            elif key == 'Subscription' and isinstance(value, dict):
                for sub_key, sub_value in value.items():
                    if isinstance(sub_value, dict):
                        subscriptions.append(cls._subscription(sub_key, sub_value))

        logger.debug("Configured subscriptions: %d", len(subscriptions))

        return cls(
            storage_dir=storage_dir,
            owner=general.get('owner', 'local'),
            timezone=general.get('timezone'),
            log_level=general.get('log_level', 'INFO'),
            sync=sync,
            colors=colors,
            subscriptions=subscriptions,
        )

    @staticmethod
    def _subscription(sub_id: str, value: dict) -> SubscriptionConfig:
        return SubscriptionConfig(
            name=value.get('name', sub_id),
            url=value.get('url', ''),
            color=value.get('color'),
            enabled=value.get('enabled', True),
        )


# Colors palette for auto-assignment to subscriptions
CALENDAR_COLORS = [
    '#4285f4',  # Blue
    '#34a853',  # Green
    '#ea4335',  # Red
    '#fbbc05',  # Yellow
    '#9c27b0',  # Purple
    '#00bcd4',  # Cyan
    '#ff5722',  # Deep Orange
    '#607d8b',  # Blue Grey
    '#e91e63',  # Pink
    '#3f51b5',  # Indigo
]


def get_next_color(used_colors: list[str]) -> str:
    """Get the next available color from the palette."""
    for color in CALENDAR_COLORS:
        if color.lower() not in [c.lower() for c in used_colors]:
            return color
    # If all colors are used, cycle back
    return CALENDAR_COLORS[len(used_colors) % len(CALENDAR_COLORS)]
