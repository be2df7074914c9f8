"""
Timeline Configuration Manager
Handles loading and saving display toggles and the last active timeline.
"""

import json
import logging
import os
from dataclasses import asdict, dataclass, fields

from simple_timeline.utils.error_handler import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class DisplaySettings:
    """Toggles for card content and editing behavior."""

    show_title: bool = True
    show_details: bool = True
    show_people: bool = True
    show_locations: bool = True
    show_duration: bool = True
    is_drag_enabled: bool = True
    is_tap_to_add_enabled: bool = True
    constrain_events_to_bounds: bool = True

    def update(self, values):
        """Apply known boolean keys from a mapping; unknown keys are ignored."""
        known = {f.name for f in fields(self)}
        for key, value in values.items():
            if key in known and isinstance(value, bool):
                setattr(self, key, value)


class TimelineConfig:
    """
    Manages timeline preferences.

    Preferences live in the ``timeline`` section of a JSON file that may hold
    other sections; saving keeps those sections intact. An instance is
    created by the application and handed to the components that need it.
    """

    SECTION = 'timeline'

    def __init__(self, config_file=None):
        """
        Initialize timeline configuration manager.

        Args:
            config_file: Path to configuration file (optional)
        """
        self.config_file = config_file
        self.display = DisplaySettings()
        self.last_active_timeline_id = None

        if config_file and os.path.exists(config_file):
            self.load()

    def load(self):
        """Load preferences from the configuration file."""
        if not self.config_file or not os.path.exists(self.config_file):
            return

        try:
            if os.path.getsize(self.config_file) == 0:
                return

            with open(self.config_file, 'r') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read timeline configuration {self.config_file}: {e}")
            return

        section = data.get(self.SECTION) if isinstance(data, dict) else None
        if not isinstance(section, dict):
            return

        display = section.get('display')
        if isinstance(display, dict):
            self.display.update(display)

        last_active = section.get('last_active_timeline_id')
        if last_active is None or isinstance(last_active, str):
            self.last_active_timeline_id = last_active

    def save(self):
        """Save preferences to the configuration file."""
        if not self.config_file:
            return

        existing_data = {}
        if os.path.exists(self.config_file) and os.path.getsize(self.config_file) > 0:
            try:
                with open(self.config_file, 'r') as f:
                    existing_data = json.load(f)
            except (OSError, ValueError):
                # Not valid JSON, start fresh
                existing_data = {}
            if not isinstance(existing_data, dict):
                existing_data = {}

        existing_data[self.SECTION] = self.to_dict()

        try:
            config_dir = os.path.dirname(self.config_file)
            if config_dir:
                os.makedirs(config_dir, exist_ok=True)

            with open(self.config_file, 'w') as f:
                json.dump(existing_data, f, indent=2)
        except OSError as e:
            logger.error(f"Error saving timeline configuration {self.config_file}: {e}")

    def to_dict(self):
        return {
            'display': asdict(self.display),
            'last_active_timeline_id': self.last_active_timeline_id,
        }

    def set_last_active_timeline_id(self, timeline_id):
        """Remember the active timeline and save."""
        self.last_active_timeline_id = timeline_id
        self.save()

    def set_display_option(self, name, value):
        """
        Set one display toggle and save.

        Args:
            name: DisplaySettings field name
            value: New boolean value

        Raises:
            ConfigurationError: If the option does not exist
        """
        if name not in {f.name for f in fields(self.display)}:
            raise ConfigurationError(f"Unknown display option: {name}")
        setattr(self.display, name, bool(value))
        self.save()
