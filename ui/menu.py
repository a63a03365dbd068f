"""Startup Settings Menu for Historical Friction.

Provides an accessible audio-first menu for choosing the sonification
mode and listening radius before the session starts. Uses TTS for all
feedback.
"""

import pygame
from typing import List, Callable, Optional

from state.app_state import SonificationMode
from state.constants import DEFAULT_RADIUS, RADIUS_MIN, RADIUS_MAX, RADIUS_STEP


class MenuItem:
    """A single menu item with selectable values."""

    def __init__(self, label: str, values: List, default_index: int = 0,
                 format_func: Optional[Callable] = None):
        """Create a menu item.

        Args:
            label: Display label for the item
            values: List of possible values
            default_index: Starting value index
            format_func: Optional function to format values for display
        """
        self.label = label
        self.values = values
        self.current_index = default_index
        self.format_func = format_func or str

    @property
    def current_value(self):
        """Get the currently selected value."""
        return self.values[self.current_index]

    def next_value(self):
        """Move to the next value (wraps around)."""
        self.current_index = (self.current_index + 1) % len(self.values)
        return self.current_value

    def prev_value(self):
        """Move to the previous value (wraps around)."""
        self.current_index = (self.current_index - 1) % len(self.values)
        return self.current_value

    def get_display_text(self) -> str:
        """Get the full display text for this item."""
        return f"{self.label}: {self.format_func(self.current_value)}"

    def get_value_text(self) -> str:
        """Get just the value portion for announcement."""
        return self.format_func(self.current_value)


class SettingsMenu:
    """Startup settings menu with TTS support.

    Navigation:
    - UP/DOWN: Move between menu items
    - LEFT/RIGHT: Change selected item's value
    - ENTER: Confirm and start listening (when on Start item)
    """

    def __init__(self, tts_manager):
        """Create the settings menu.

        Args:
            tts_manager: TTSManager instance for audio feedback
        """
        self.tts = tts_manager
        self.items: List[MenuItem] = []
        self.selected_index = 0
        self.confirmed = False
        self._announced = False
        self._setup_default_items()

    def _setup_default_items(self):
        """Set up the default menu items."""
        self.items.append(MenuItem(
            label="Mode",
            values=list(SonificationMode),
            default_index=0,
            format_func=lambda mode: mode.label
        ))

        radii = list(range(RADIUS_MIN, RADIUS_MAX + 1, RADIUS_STEP))
        self.items.append(MenuItem(
            label="Radius",
            values=radii,
            default_index=radii.index(DEFAULT_RADIUS),
            format_func=lambda r: f"{r} meters"
        ))

        # Start option (action item)
        self.items.append(MenuItem(
            label="Start Listening",
            values=["Press Enter to begin"],
            default_index=0
        ))

    def get_mode(self) -> SonificationMode:
        """Get the selected sonification mode."""
        return self.items[0].current_value

    def get_radius(self) -> int:
        """Get the selected radius in meters."""
        return self.items[1].current_value

    def handle_input(self, key: int) -> bool:
        """Handle keyboard input.

        Args:
            key: pygame key constant

        Returns:
            True if menu should close (listening should start)
        """
        if key == pygame.K_UP:
            self._move_selection(-1)
        elif key == pygame.K_DOWN:
            self._move_selection(1)
        elif key == pygame.K_LEFT:
            self._change_value(-1)
        elif key == pygame.K_RIGHT:
            self._change_value(1)
        elif key == pygame.K_RETURN:
            return self._confirm_selection()

        return False

    def _move_selection(self, direction: int):
        """Move menu selection up or down."""
        old_index = self.selected_index
        self.selected_index = (self.selected_index + direction) % len(self.items)

        if self.selected_index != old_index:
            self._announce_current_item()

    def _change_value(self, direction: int):
        """Change the value of the current menu item."""
        item = self.items[self.selected_index]

        if len(item.values) <= 1:
            return

        if direction > 0:
            item.next_value()
        else:
            item.prev_value()

        self._announce_current_value()

    def _confirm_selection(self) -> bool:
        """Handle enter key press.

        Returns:
            True if listening should start
        """
        if self.selected_index == len(self.items) - 1:
            self.confirmed = True
            self.tts.speak(f"Starting {self.get_mode().label} mode, {self.get_radius()} meter radius")
            return True

        # Otherwise treat enter as cycling the value
        item = self.items[self.selected_index]
        if len(item.values) > 1:
            item.next_value()
            self._announce_current_value()

        return False

    def _announce_current_item(self):
        """Announce the currently selected menu item."""
        item = self.items[self.selected_index]
        self.tts.speak(item.get_display_text())

    def _announce_current_value(self):
        """Announce just the current value of the selected item."""
        item = self.items[self.selected_index]
        self.tts.speak(item.get_value_text())

    def announce_menu(self):
        """Announce the menu introduction. Call when the menu first appears."""
        if self._announced:
            return

        self._announced = True
        self.tts.speak(
            "Settings. "
            "Use up and down arrows to navigate. "
            "Left and right arrows to change values. "
            "Enter to start."
        )
        self._announce_current_item()

    def get_config(self) -> dict:
        """Get all settings as a dictionary."""
        return {
            'mode': self.get_mode(),
            'radius': self.get_radius()
        }
