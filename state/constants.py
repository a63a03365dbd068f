"""
Constants and configuration for Historical Friction.

All tunable parameters and constant values are centralized here
for easy modification and balancing.
"""

# =============================================================================
# DISPLAY
# =============================================================================
WINDOW_SIZE = (1, 1)  # Minimal window (audio-first application)
WINDOW_TITLE = "Historical Friction"
FPS = 60

# =============================================================================
# LISTENER
# =============================================================================
DEFAULT_LOCATION = (51.5074, -0.1278)  # London (lat, lng)
DEFAULT_RADIUS = 1000     # Meters
RADIUS_MIN = 100
RADIUS_MAX = 10000
RADIUS_STEP = 100
ROTATION_SPEED = 90       # Degrees per second while an arrow key is held
HEADING_ANNOUNCE_COOLDOWN = 1500  # Milliseconds between heading announcements

DEFAULT_PLACES_FILE = "places.json"

# =============================================================================
# AUDIO ENGINE
# =============================================================================
MAX_CHANNELS = 128
MASTER_VOLUME_DEFAULT = 1.0
VOLUME_STEP = 0.1

# Voice release: gain ramps to zero, generators halt shortly after
RELEASE_TIME = 0.2        # Seconds
HALT_DELAY = 0.25         # Seconds after stop() before generators halt

# Pan smoothing (exponential approach time constants, seconds)
PAN_TIME_CONSTANT = 0.1
MURMUR_PAN_TIME_CONSTANT = 0.2

# Activity normalization: log10(edits + 1) / divisor, saturates near 10k edits
ACTIVITY_LOG_DIVISOR = 4.0

# =============================================================================
# AMBIENT MODE
# =============================================================================
AMBIENT_MAX_VOICES = 15
AMBIENT_BASE_FREQ = 150.0
AMBIENT_PROXIMITY_FREQ_SPAN = 300.0
AMBIENT_ACTIVITY_FREQ_SHIFT = 50.0
AMBIENT_MAX_PARTIALS = 4
AMBIENT_FADE_IN = 0.5
AMBIENT_VOLUME_SCALE = 0.3
AMBIENT_VOLUME_FLOOR = 0.2     # Share of the volume independent of activity
AMBIENT_VOLUME_ACTIVITY = 0.8  # Share of the volume driven by activity
AMBIENT_BREATH_RATE_RANGE = (0.05, 0.25)  # Hz
AMBIENT_BREATH_DEPTH = 0.5

# =============================================================================
# CACOPHONY MODE
# =============================================================================
# Floor drone
DRONE_FREQ = 55.0
DRONE_FILTER_CUTOFF = 300.0
DRONE_LEVEL = 0.08
DRONE_FADE_IN = 2.0

# Crowd murmur
MURMUR_MAX = 10
MURMUR_FREQ_RANGE = (80.0, 200.0)
MURMUR_FORMANT_RANGE = (400.0, 1400.0)
MURMUR_FORMANT_Q = 5.0
MURMUR_WOBBLE_RATE_RANGE = (0.5, 2.5)  # Hz
MURMUR_WOBBLE_DEPTH = 150.0            # Hz either side of the formant center
MURMUR_LEVEL = 0.03
MURMUR_FADE_IN_RANGE = (1.0, 2.0)

# Whisper noise bed
NOISE_FILTER_FREQ = 2000.0
NOISE_FILTER_Q = 1.0
NOISE_LEVEL_PER_PLACE = 0.003
NOISE_LEVEL_MAX = 0.05
NOISE_FADE_IN = 3.0

# =============================================================================
# NARRATION
# =============================================================================
NARRATION_BASE_INTERVAL = 4.0     # Seconds
NARRATION_INTERVAL_STEP = 0.1     # Seconds shaved off per place
NARRATION_MIN_INTERVAL = 1.0
NARRATION_MIN_FRAGMENT = 5        # Fragments must be longer than this
NARRATION_PITCH_RANGE = (0.5, 2.0)
NARRATION_RATE_RANGE = (0.8, 1.5)
NARRATION_MIN_VOLUME = 0.3
NARRATION_BASE_RATE_WPM = 180     # Speech engine words per minute at rate 1.0
NARRATION_BASE_PITCH = 50         # Speech engine pitch at multiplier 1.0

# =============================================================================
# MELODY MODE
# =============================================================================
MELODY_SCALE = (261.63, 293.66, 329.63, 392.00, 440.00, 523.25)
MELODY_WAVEFORMS = ('sine', 'triangle', 'sawtooth')  # Mellow -> bright
MELODY_FILTER_BASE_CUTOFF = 600.0
MELODY_FILTER_CUTOFF_SPAN = 3400.0
MELODY_FILTER_BASE_Q = 1.0
MELODY_FILTER_Q_SPAN = 5.0
MELODY_ATTACK = 0.05
MELODY_BASE_DURATION = 0.8
MELODY_DURATION_SPAN = 1.5
MELODY_DECAY_FLOOR = 0.001
MELODY_TAIL = 0.1                 # Generator keeps running this long after decay
MELODY_VOLUME_SCALE = 0.4
MELODY_MIN_PROXIMITY = 0.1
MELODY_VOLUME_FLOOR = 0.3
MELODY_VOLUME_ACTIVITY = 0.7
MELODY_ECHO_ENABLED = True
MELODY_ECHO_DELAY_MS = 400.0
MELODY_ECHO_FEEDBACK = 35.0       # Percent
MELODY_ECHO_WET_DB = -6.0
MELODY_BASE_STEP = 1.0            # Seconds between notes at zero activity
MELODY_STEP_ACTIVITY = 0.4        # Seconds shaved off at full activity
MELODY_STEP_JITTER = 0.5
MELODY_MIN_STEP = 0.4

# =============================================================================
# LOGGING
# =============================================================================
AUDIO_LOG_LEVEL = 'WARNING'
AUDIO_LOG_BUFFER = 100
SPATIAL_LOG_THROTTLE_MS = 250
