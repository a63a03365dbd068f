#!/usr/bin/env python3
"""
Historical Friction - hear the Wikipedia history around you.

This is the entry point. Run this file to start listening.
The code is organized into modular components:

- audio/     - Sonification engine (voices, timers, narration, spatial panning)
- modes/     - Mode strategies (ambient, cacophony, melody)
- state/     - Session state, place model and constants
- ui/        - User interface (TTS announcements, settings menu)
- utils/     - Utility functions

Usage:
    python friction.py [places.json]
"""

from main import main

if __name__ == '__main__':
    main()
