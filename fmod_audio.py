"""
FMOD Audio Module for Historical Friction

This module provides an abstraction layer over pyfmodex (FMOD Python bindings)
for real-time synthesis: oscillator DSPs played on channels, filter and echo
DSPs inserted into those channels, and one channel group per voice for gain
and stereo pan, all feeding a master output group.

Usage:
    from fmod_audio import SynthAudio

    audio = SynthAudio()
    if audio.init(max_channels=128):
        bus = audio.create_bus('voice')
        osc = audio.create_oscillator('sine', 440.0)
        channel = audio.play_dsp(osc, bus)

    # In main loop:
    audio.update()

    # Cleanup:
    audio.cleanup()
"""

import os

from state.constants import MAX_CHANNELS, MASTER_VOLUME_DEFAULT

# FMOD_DSP_OSCILLATOR parameters
OSC_PARAM_TYPE = 0
OSC_PARAM_RATE = 1
WAVEFORMS = {
    'sine': 0,
    'square': 1,
    'sawtooth': 2,
    'sawdown': 3,
    'triangle': 4,
    'noise': 5,
}

# FMOD_DSP_MULTIBAND_EQ band A parameters
EQ_PARAM_A_FILTER = 0
EQ_PARAM_A_FREQUENCY = 1
EQ_PARAM_A_Q = 2
FILTER_TYPES = {
    'lowpass': 2,    # LOWPASS_24DB, resonant
    'highpass': 5,   # HIGHPASS_24DB
    'bandpass': 10,  # BANDPASS
}

# FMOD_DSP_ECHO parameters
ECHO_PARAM_DELAY = 0
ECHO_PARAM_FEEDBACK = 1
ECHO_PARAM_DRYLEVEL = 2
ECHO_PARAM_WETLEVEL = 3

# Errors FMOD raises when a handle outlived its sound: expected during teardown
EXPECTED_ERRORS = ('INVALID HANDLE', 'CHANNEL STOLEN', 'INVALID_HANDLE', 'CHANNEL_STOLEN')


def is_expected_error(error: Exception) -> bool:
    """Check whether an FMOD error is a stale-handle race rather than a fault."""
    error_str = str(error).upper()
    return any(marker in error_str for marker in EXPECTED_ERRORS)


# Imported after the constants above: audio.primitives imports them from here
from audio.logging import AudioLogger  # noqa: E402


class SynthAudio:
    """Audio output context wrapper for FMOD/pyfmodex."""

    def __init__(self, system_factory=None, dsp_types=None):
        """Create the (not yet initialized) output context.

        Args:
            system_factory: Callable returning an FMOD System. Defaults to
                            pyfmodex.System, imported on init().
            dsp_types: DSP_TYPE enumeration matching the factory. Defaults to
                       pyfmodex.enums.DSP_TYPE.
        """
        self._system_factory = system_factory
        self._dsp_types = dsp_types
        self.system = None
        self.master_group = None
        self.output_group = None
        self.master_volume = MASTER_VOLUME_DEFAULT
        self._buses = []
        self._initialized = False
        self._suspended = False
        self._logger = AudioLogger.get_instance()

    def init(self, max_channels=MAX_CHANNELS) -> bool:
        """Initialize FMOD and the master output group.

        Safe to call repeatedly. A failure (FMOD library missing, no output
        device) is logged and leaves the context uninitialized.

        Args:
            max_channels: Maximum number of virtual channels

        Returns:
            True if the context is ready
        """
        if self._initialized:
            return True

        try:
            factory = self._system_factory
            if factory is None:
                # Ensure DLLs can be found from project directory
                dll_path = os.path.dirname(os.path.abspath(__file__))
                try:
                    os.add_dll_directory(dll_path)
                except (AttributeError, OSError):
                    pass  # add_dll_directory not available or failed

                import pyfmodex
                from pyfmodex.enums import DSP_TYPE
                factory = pyfmodex.System
                self._dsp_types = DSP_TYPE

            system = factory()
            system.init(maxchannels=max_channels)
            self.system = system
            self.master_group = system.master_channel_group

            # Master output gain: every voice bus hangs off this group
            self.output_group = system.create_channel_group('sonification')
            self.master_group.add_group(self.output_group)
            self.output_group.volume = self.master_volume
        except Exception as e:
            self._logger.error("Audio initialization failed", {'error': str(e)})
            self._release_system()
            return False

        self._initialized = True
        self._suspended = False
        self._logger.info("FMOD initialized", {'max_channels': max_channels})
        return True

    def resume(self) -> bool:
        """Ensure the mixer is running.

        Returns:
            True if the mixer is running afterwards
        """
        if not self._initialized:
            return False
        if not self._suspended:
            return True
        try:
            self.system.mixer_resume()
            self._suspended = False
            return True
        except Exception as e:
            self._logger.warning("Mixer resume failed", {'error': str(e)})
            return False

    def suspend(self):
        """Suspend the mixer. The engine calls this once sound is toggled off and faded."""
        if not self._initialized or self._suspended:
            return
        try:
            self.system.mixer_suspend()
            self._suspended = True
        except Exception as e:
            self._logger.warning("Mixer suspend failed", {'error': str(e)})

    @property
    def is_initialized(self) -> bool:
        """Check if the output context exists."""
        return self._initialized

    @property
    def is_running(self) -> bool:
        """Check if the context exists and the mixer is not suspended."""
        return self._initialized and not self._suspended

    # === Node factories ===

    def create_oscillator(self, waveform='sine', frequency=440.0):
        """Create an oscillator DSP.

        Args:
            waveform: One of WAVEFORMS ('sine', 'square', 'sawtooth', 'triangle', 'noise')
            frequency: Oscillator rate in Hz

        Returns:
            The DSP object, or None if creation failed
        """
        if not self._initialized:
            return None
        try:
            dsp = self.system.create_dsp_by_type(self._dsp_types.OSCILLATOR)
            dsp.set_parameter_int(OSC_PARAM_TYPE, WAVEFORMS.get(waveform, 0))
            dsp.set_parameter_float(OSC_PARAM_RATE, float(frequency))
            return dsp
        except Exception as e:
            self._logger.warning("Oscillator creation failed", {
                'waveform': waveform,
                'error': str(e)
            })
            return None

    def create_filter(self, kind='lowpass', frequency=1000.0, q=0.707):
        """Create a single-band filter DSP (multiband EQ, band A only).

        Args:
            kind: 'lowpass', 'highpass' or 'bandpass'
            frequency: Cutoff/center frequency in Hz
            q: Resonance / bandwidth

        Returns:
            The DSP object, or None if creation failed
        """
        if not self._initialized:
            return None
        try:
            dsp = self.system.create_dsp_by_type(self._dsp_types.MULTIBAND_EQ)
            dsp.set_parameter_int(EQ_PARAM_A_FILTER, FILTER_TYPES.get(kind, FILTER_TYPES['lowpass']))
            dsp.set_parameter_float(EQ_PARAM_A_FREQUENCY, max(20.0, min(22000.0, float(frequency))))
            dsp.set_parameter_float(EQ_PARAM_A_Q, max(0.1, min(10.0, float(q))))
            return dsp
        except Exception as e:
            self._logger.warning("Filter creation failed", {'kind': kind, 'error': str(e)})
            return None

    def create_echo(self, delay_ms=400.0, feedback=35.0, wet_db=-6.0):
        """Create an echo DSP.

        Args:
            delay_ms: Echo delay in milliseconds
            feedback: Echo decay per delay, percent
            wet_db: Echo level in dB

        Returns:
            The DSP object, or None if creation failed
        """
        if not self._initialized:
            return None
        try:
            dsp = self.system.create_dsp_by_type(self._dsp_types.ECHO)
            dsp.set_parameter_float(ECHO_PARAM_DELAY, float(delay_ms))
            dsp.set_parameter_float(ECHO_PARAM_FEEDBACK, float(feedback))
            dsp.set_parameter_float(ECHO_PARAM_DRYLEVEL, 0.0)
            dsp.set_parameter_float(ECHO_PARAM_WETLEVEL, float(wet_db))
            return dsp
        except Exception as e:
            self._logger.warning("Echo creation failed", {'error': str(e)})
            return None

    def create_bus(self, name):
        """Create a channel group under the master output group.

        Args:
            name: Group name (for FMOD profiling)

        Returns:
            The ChannelGroup, or None if creation failed
        """
        if not self._initialized:
            return None
        try:
            group = self.system.create_channel_group(name)
            self.output_group.add_group(group)
            self._buses.append(group)
            return group
        except Exception as e:
            self._logger.warning("Bus creation failed", {'name': name, 'error': str(e)})
            return None

    def release_bus(self, group):
        """Release a channel group created by create_bus."""
        if group is None:
            return
        if group in self._buses:
            self._buses.remove(group)
        try:
            group.release()
        except Exception as e:
            if not is_expected_error(e):
                self._logger.warning("Bus release failed", {'error': str(e)})

    def play_dsp(self, dsp, group=None, paused=False):
        """Play a generator DSP on a new channel.

        Args:
            dsp: Oscillator DSP
            group: Channel group to route through (defaults to the output group)
            paused: If True, start paused (set channel.paused = False to play)

        Returns:
            The Channel object, or None if failed
        """
        if not self._initialized or dsp is None:
            return None
        try:
            return self.system.play_dsp(dsp, group or self.output_group, paused)
        except Exception as e:
            self._logger.warning("DSP playback failed", {'error': str(e)})
            return None

    # === Master volume ===

    def set_master_volume(self, volume):
        """Set master volume affecting all voices.

        Args:
            volume: Volume level (0.0 to 1.0)
        """
        self.master_volume = max(0.0, min(1.0, volume))
        if self.output_group is not None:
            try:
                self.output_group.volume = self.master_volume
            except Exception:
                pass

    def get_master_volume(self):
        """Get current master volume."""
        return self.master_volume

    def update(self):
        """Update FMOD system. Must be called every frame."""
        if self.system:
            try:
                self.system.update()
            except Exception:
                pass

    def cleanup(self):
        """Release all FMOD resources. Call before exiting."""
        if not self._initialized:
            return

        for group in list(self._buses):
            self.release_bus(group)

        if self.output_group is not None:
            try:
                self.output_group.release()
            except Exception:
                pass
            self.output_group = None

        self._release_system()
        self._initialized = False
        self._logger.info("FMOD audio system released")

    def _release_system(self):
        """Close and release the FMOD system object, if any."""
        if self.system:
            try:
                self.system.close()
                self.system.release()
            except Exception:
                pass
        self.system = None
        self.master_group = None
        self.output_group = None
