"""Synthesis primitives for Historical Friction.

Thin objects over FMOD DSPs and channel groups:
- Param: an automatable value (ramps, exponential approach, modulation)
  that pushes its effective value to FMOD whenever it changes
- Lfo: slow sine modulator advanced per frame
- ToneGenerator / NoiseGenerator: oscillator DSPs playing on a channel
- Filter / Echo: effect DSPs inserted into a channel or group
- VoiceBus / GainEnvelope / StereoPanner: one channel group per voice

All automation advances in advance(dt), called once per frame.
"""

import math
from typing import Callable, List, Optional

from audio.logging import audio_log
from fmod_audio import EQ_PARAM_A_FREQUENCY, EQ_PARAM_A_Q, OSC_PARAM_RATE, is_expected_error


def guarded(action: Callable, what: str, source: Optional[str] = None) -> bool:
    """Run an FMOD call, absorbing stale-handle races.

    Expected errors (INVALID HANDLE, CHANNEL STOLEN) are silent; anything
    else is logged as a warning. Never raises.

    Returns:
        True if the call succeeded
    """
    try:
        action()
        return True
    except Exception as e:
        if not is_expected_error(e):
            audio_log('WARNING', f"{what} failed", {'source': source, 'error': str(e)})
        return False


class Param:
    """Automatable scalar with a timeline of ramps.

    Ramps queue one after another, each starting from the value the previous
    one ended on. set_value(), set_target() and cancel() clear the queue.
    """

    MIN_EXPONENTIAL = 1e-4
    SETTLE_EPSILON = 1e-4

    def __init__(self, value: float = 0.0, apply: Optional[Callable] = None,
                 minimum: Optional[float] = None, maximum: Optional[float] = None):
        self._value = float(value)
        self._apply = apply
        self.minimum = minimum
        self.maximum = maximum
        self.modulation = 0.0
        self._segments: List[dict] = []
        self._pushed = None
        self._push()

    @property
    def value(self) -> float:
        """Automated value, without modulation."""
        return self._value

    @property
    def effective(self) -> float:
        """Value plus modulation, clamped to the parameter range."""
        value = self._value + self.modulation
        if self.minimum is not None:
            value = max(self.minimum, value)
        if self.maximum is not None:
            value = min(self.maximum, value)
        return value

    @property
    def target(self) -> float:
        """Value the automation ends on (the current value if idle)."""
        return self._segments[-1]['target'] if self._segments else self._value

    @property
    def is_automating(self) -> bool:
        return bool(self._segments)

    def set_value(self, value: float):
        """Jump to a value immediately, cancelling automation."""
        self._segments.clear()
        self._value = float(value)
        self._push()

    def linear_ramp_to(self, target: float, duration: float):
        """Queue a linear ramp to target over duration seconds."""
        self._queue('linear', target, duration)

    def exponential_ramp_to(self, target: float, duration: float):
        """Queue an exponential ramp. Both ends are kept above zero."""
        self._queue('exponential', max(self.MIN_EXPONENTIAL, float(target)), duration)

    def set_target(self, target: float, time_constant: float):
        """Approach target exponentially with the given time constant."""
        self._segments = [{
            'kind': 'target',
            'target': float(target),
            'tau': max(1e-3, float(time_constant)),
        }]

    def cancel(self):
        """Drop all automation, holding the current value."""
        self._segments.clear()

    def _queue(self, kind: str, target: float, duration: float):
        if duration <= 0 and not self._segments:
            self.set_value(target)
            return
        self._segments.append({
            'kind': kind,
            'target': float(target),
            'duration': max(0.0, float(duration)),
            'elapsed': 0.0,
            'start': None,
        })

    def advance(self, dt: float):
        """Advance automation by dt seconds and push the result."""
        remaining = dt
        while self._segments and remaining >= 0:
            segment = self._segments[0]
            if segment['kind'] == 'target':
                gap = segment['target'] - self._value
                self._value += gap * (1.0 - math.exp(-remaining / segment['tau']))
                if abs(segment['target'] - self._value) < self.SETTLE_EPSILON:
                    self._value = segment['target']
                    self._segments.pop(0)
                break

            if segment['start'] is None:
                segment['start'] = self._value
            step = min(remaining, segment['duration'] - segment['elapsed'])
            segment['elapsed'] += step
            remaining -= step

            if segment['elapsed'] >= segment['duration']:
                self._value = segment['target']
                self._segments.pop(0)
                if remaining <= 0:
                    break
                continue

            fraction = segment['elapsed'] / segment['duration']
            start, target = segment['start'], segment['target']
            if segment['kind'] == 'linear':
                self._value = start + (target - start) * fraction
            else:
                start = max(self.MIN_EXPONENTIAL, start)
                self._value = start * (target / start) ** fraction
            break

        self._push()

    def _push(self):
        value = self.effective
        if self._apply is None or value == self._pushed:
            return
        self._pushed = value
        self._apply(value)


class Lfo:
    """Sine low-frequency oscillator, advanced manually."""

    def __init__(self, rate: float, depth: float, phase: float = 0.0):
        self.rate = rate
        self.depth = depth
        self.phase = phase % 1.0

    @property
    def value(self) -> float:
        return self.depth * math.sin(2.0 * math.pi * self.phase)

    def advance(self, dt: float) -> float:
        self.phase = (self.phase + self.rate * dt) % 1.0
        return self.value


class Filter:
    """Single-band filter DSP with automatable frequency and Q."""

    def __init__(self, audio, kind: str = 'lowpass', frequency: float = 1000.0, q: float = 0.707):
        self.kind = kind
        self.dsp = audio.create_filter(kind, frequency, q)
        self.frequency = Param(frequency, self._apply_frequency, 20.0, 22000.0)
        self.q = Param(q, self._apply_q, 0.1, 10.0)

    def _apply_frequency(self, value):
        if self.dsp is not None:
            guarded(lambda: self.dsp.set_parameter_float(EQ_PARAM_A_FREQUENCY, value), "Filter frequency")

    def _apply_q(self, value):
        if self.dsp is not None:
            guarded(lambda: self.dsp.set_parameter_float(EQ_PARAM_A_Q, value), "Filter Q")

    def advance(self, dt):
        self.frequency.advance(dt)
        self.q.advance(dt)

    def release(self):
        if self.dsp is not None:
            guarded(self.dsp.release, "Filter release")
            self.dsp = None


class Echo:
    """Echo DSP with fixed delay."""

    def __init__(self, audio, delay_ms: float, feedback: float, wet_db: float):
        self.dsp = audio.create_echo(delay_ms, feedback, wet_db)

    def advance(self, dt):
        pass

    def release(self):
        if self.dsp is not None:
            guarded(self.dsp.release, "Echo release")
            self.dsp = None


class ToneGenerator:
    """An oscillator DSP playing on its own channel inside a voice bus."""

    def __init__(self, audio, bus, waveform: str = 'sine', frequency: float = 440.0,
                 level: float = 1.0):
        self.audio = audio
        self.bus = bus
        self.waveform = waveform
        self._dsp = None
        self._channel = None
        self._inserts = []
        self.frequency = Param(frequency, self._apply_frequency, minimum=0.0)
        self.level = Param(level, self._apply_level, 0.0, 1.0)

    @property
    def dsp(self):
        return self._dsp

    @property
    def channel(self):
        return self._channel

    @property
    def is_playing(self) -> bool:
        return self._channel is not None

    def insert(self, effect):
        """Insert an effect (Filter/Echo) into this generator's channel."""
        self._inserts.append(effect)
        if self._channel is not None and effect.dsp is not None:
            guarded(lambda: self._channel.add_dsp(0, effect.dsp), "Effect insert", self.waveform)

    def start(self) -> bool:
        """Create the oscillator and start it on the bus."""
        if self._channel is not None or self.bus.group is None:
            return False
        self._dsp = self.audio.create_oscillator(self.waveform, self.frequency.effective)
        if self._dsp is None:
            return False
        channel = self.audio.play_dsp(self._dsp, self.bus.group, paused=True)
        if channel is None:
            guarded(self._dsp.release, "Oscillator release")
            self._dsp = None
            return False
        self._channel = channel
        for effect in self._inserts:
            if effect.dsp is not None:
                guarded(lambda e=effect: channel.add_dsp(0, e.dsp), "Effect insert", self.waveform)
        level = self.level.effective

        def _unpause():
            channel.volume = level
            channel.paused = False
        guarded(_unpause, "Generator start", self.waveform)
        return True

    def _apply_frequency(self, value):
        if self._dsp is not None:
            guarded(lambda: self._dsp.set_parameter_float(OSC_PARAM_RATE, value), "Oscillator rate")

    def _apply_level(self, value):
        if self._channel is not None:
            def _set():
                self._channel.volume = value
            guarded(_set, "Generator level")

    def advance(self, dt):
        self.frequency.advance(dt)
        self.level.advance(dt)

    def halt(self):
        """Stop the channel. The DSP stays allocated until disconnect()."""
        if self._channel is not None:
            guarded(self._channel.stop, "Generator halt", self.waveform)

    def disconnect(self):
        """Remove inserted effects and release the oscillator."""
        channel = self._channel
        if channel is not None:
            for effect in self._inserts:
                if effect.dsp is not None:
                    guarded(lambda e=effect: channel.remove_dsp(e.dsp), "Effect remove")
        self._channel = None
        if self._dsp is not None:
            guarded(self._dsp.release, "Oscillator release", self.waveform)
            self._dsp = None


class NoiseGenerator(ToneGenerator):
    """White noise source; loops until halted."""

    def __init__(self, audio, bus, level: float = 1.0):
        super().__init__(audio, bus, waveform='noise', frequency=0.0, level=level)


class VoiceBus:
    """Channel group owned by one voice; effects may be inserted on it."""

    def __init__(self, audio, name: str):
        self.audio = audio
        self.name = name
        self.group = audio.create_bus(name)
        self._effects = []

    def insert(self, effect):
        self._effects.append(effect)
        if self.group is not None and effect.dsp is not None:
            guarded(lambda: self.group.add_dsp(0, effect.dsp), "Bus insert", self.name)

    def release(self):
        """Detach effects and release the group."""
        group = self.group
        if group is None:
            return
        for effect in self._effects:
            if effect.dsp is not None:
                guarded(lambda e=effect: group.remove_dsp(e.dsp), "Bus effect remove", self.name)
        self._effects.clear()
        self.audio.release_bus(group)
        self.group = None


class GainEnvelope:
    """Gain of a voice bus."""

    def __init__(self, bus: VoiceBus, level: float = 0.0):
        self.bus = bus
        self.gain = Param(level, self._apply, 0.0, 1.0)

    def _apply(self, value):
        if self.bus.group is not None:
            def _set():
                self.bus.group.volume = value
            guarded(_set, "Bus gain", self.bus.name)

    def advance(self, dt):
        self.gain.advance(dt)


class StereoPanner:
    """Stereo position of a voice bus, -1 (left) to 1 (right)."""

    def __init__(self, bus: VoiceBus, pan: float = 0.0):
        self.bus = bus
        self.pan = Param(pan, self._apply, -1.0, 1.0)

    def _apply(self, value):
        if self.bus.group is not None:
            guarded(lambda: self.bus.group.set_pan(value), "Bus pan", self.bus.name)

    def advance(self, dt):
        self.pan.advance(dt)
