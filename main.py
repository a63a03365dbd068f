"""
Main loop for Historical Friction.

Initializes all systems and runs the main loop: the settings menu first,
then listening. Sound is rebuilt whenever mode, radius or sound toggle
change; turning only re-pans.
"""

import os
import sys

import pygame

from state.constants import (
    WINDOW_SIZE, WINDOW_TITLE, FPS, VOLUME_STEP, RADIUS_STEP,
    ROTATION_SPEED, HEADING_ANNOUNCE_COOLDOWN, DEFAULT_PLACES_FILE,
)
from state.app_state import AppState
from audio.engine import SonificationEngine
from audio.logging import AudioLogger
from audio.audio_logger import set_audio_logging
from ui.tts import TTSManager
from ui.menu import SettingsMenu
from utils.helpers import get_cardinal_direction, get_direction_description, relative_angle


class FrictionApp:
    """Main application class that orchestrates all systems."""

    def __init__(self, places_file: str = DEFAULT_PLACES_FILE):
        """Initialize the application.

        Args:
            places_file: JSON file with the articles to sonify
        """
        pygame.init()
        self.screen = pygame.display.set_mode(WINDOW_SIZE)
        pygame.display.set_caption(WINDOW_TITLE)
        self.clock = pygame.time.Clock()

        self.tts = TTSManager()
        self.tts.init()

        self.engine = SonificationEngine.get_instance()
        if not self.engine.init():
            print("Audio unavailable: running silently")

        self.state = AppState()
        if os.path.exists(places_file):
            try:
                count = self.state.load_places_file(places_file)
                print(f"Loaded {count} articles from {places_file}")
            except (OSError, ValueError) as e:
                print(f"Could not read {places_file}: {e}")
        else:
            print(f"No place file at {places_file}")

        self.running = True
        self.settings_menu = SettingsMenu(self.tts)
        self.in_menu = True

        # Audio debug logging (toggle with F12)
        self.audio_logger = AudioLogger.get_instance()
        self.audio_logger.enable(False)

        # Spatial audio logging (toggle with L key)
        self._spatial_audio_logging = False

        print("\n=== Historical Friction ===")
        self.settings_menu.announce_menu()

    def run(self):
        """Run the main loop."""
        while self.running:
            dt_ms = self.clock.tick(FPS)
            dt = dt_ms / 1000.0

            current_time = pygame.time.get_ticks()

            self._handle_events(current_time)

            if not self.in_menu:
                keys = pygame.key.get_pressed()
                self._update_rotation(keys, dt, current_time)

            self.engine.update_frame(dt)

        self.cleanup()

    def _handle_events(self, current_time: int):
        """Handle pygame events."""
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                self.running = False

            if event.type == pygame.KEYDOWN:
                if event.key == pygame.K_ESCAPE:
                    self.running = False

                elif self.in_menu:
                    if self.settings_menu.handle_input(event.key):
                        self._start_with_settings()

                # F12: Toggle audio debug logging
                elif event.key == pygame.K_F12:
                    self.audio_logger.toggle()

                # L: Toggle spatial/voice event logging
                elif event.key == pygame.K_l:
                    self._spatial_audio_logging = not self._spatial_audio_logging
                    set_audio_logging(self._spatial_audio_logging)
                    state_text = "enabled" if self._spatial_audio_logging else "disabled"
                    self.tts.speak(f"Audio logging {state_text}")

                elif event.key == pygame.K_m:
                    mode = self.state.next_mode()
                    self.tts.speak(f"{mode.label} mode")
                    self._rebuild_sound()

                elif event.key == pygame.K_s:
                    self._toggle_sound()

                elif event.key == pygame.K_LEFTBRACKET:
                    self._change_radius(-RADIUS_STEP)
                elif event.key == pygame.K_RIGHTBRACKET:
                    self._change_radius(RADIUS_STEP)

                # Volume control
                elif event.key in (pygame.K_EQUALS, pygame.K_PLUS, pygame.K_KP_PLUS):
                    volume = self.engine.adjust_volume(VOLUME_STEP)
                    self.tts.speak(f"Volume at {int(round(volume * 100))} percent")
                elif event.key in (pygame.K_MINUS, pygame.K_KP_MINUS):
                    volume = self.engine.adjust_volume(-VOLUME_STEP)
                    self.tts.speak(f"Volume at {int(round(volume * 100))} percent")

                # Status keys
                elif event.key == pygame.K_h:
                    self._announce_heading()
                elif event.key == pygame.K_i:
                    self._announce_nearest()

    def _start_with_settings(self):
        """Apply the menu selection and start listening."""
        config = self.settings_menu.get_config()
        self.state.mode = config['mode']
        self.state.set_radius(config['radius'])
        self.in_menu = False
        self.tts.speak(f"{len(self.state.places)} places within {self.state.radius} meters. "
                       "Press S for sound.")

    def _toggle_sound(self):
        self.state.audio_enabled = not self.state.audio_enabled
        if self.state.audio_enabled:
            self.tts.speak("Sound on")
            self._rebuild_sound()
        else:
            self.engine.suspend()
            self.tts.speak("Sound off")

    def _change_radius(self, delta: int):
        radius = self.state.set_radius(self.state.radius + delta)
        self.tts.speak(f"Radius {radius} meters, {len(self.state.places)} places")
        self._rebuild_sound()

    def _rebuild_sound(self):
        """Restart the sound for the current settings, if sound is on."""
        if not self.state.audio_enabled:
            return
        self.engine.update(self.state.mode, self.state.places, self.state.radius, self.state.heading)

    def _update_rotation(self, keys, dt: float, current_time: int):
        """Turn the listener while an arrow key is held."""
        turn = 0.0
        if keys[pygame.K_LEFT]:
            turn -= ROTATION_SPEED * dt
        if keys[pygame.K_RIGHT]:
            turn += ROTATION_SPEED * dt
        if turn == 0.0:
            return

        self.state.set_heading(self.state.heading + turn)
        self.engine.set_heading(self.state.heading)
        self.tts.speak_throttled(
            'heading', get_cardinal_direction(self.state.heading),
            HEADING_ANNOUNCE_COOLDOWN, current_time
        )

    def _announce_heading(self):
        heading = self.state.heading
        self.tts.speak(f"Facing {get_cardinal_direction(heading)}, {int(round(heading))} degrees")

    def _announce_nearest(self):
        place = self.state.nearest_place
        if place is None:
            self.tts.speak("No places in range")
            return
        if place.bearing is None:
            self.tts.speak(f"{place.title}, {int(round(place.distance))} meters")
            return
        rel = relative_angle(place.bearing, self.state.heading)
        self.tts.speak(f"{place.title}, {get_direction_description(rel, place.distance)}")

    def cleanup(self):
        """Clean up all resources."""
        print("Shutting down...")
        SonificationEngine.reset_instance()
        self.tts.cleanup()
        pygame.quit()


def main():
    """Entry point for the application."""
    places_file = sys.argv[1] if len(sys.argv) > 1 else DEFAULT_PLACES_FILE
    app = FrictionApp(places_file)
    app.run()


if __name__ == '__main__':
    main()
