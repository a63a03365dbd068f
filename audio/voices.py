"""Sound-producing voices for Historical Friction.

A voice is one independently stoppable unit: a bus (channel group) with a
gain envelope and, for directional voices, a stereo panner, fed by one or
more generators. Every voice honors the same contract:

    stop()          graceful release: gain ramps to zero over RELEASE_TIME,
                    generators halt at HALT_DELAY
    dispose()       sever every DSP and channel group; safe after stop() or
                    alone. During a release it takes effect when the
                    release completes.
    repan(heading)  smoothed move to the pan for the new listener heading

Lifecycle: idle -> playing -> releasing -> stopped -> disposed. Notes that
end on their own go playing -> finished.
"""

from typing import List, Optional, Sequence

from audio.audio_logger import audio_log as event_log
from audio.primitives import (
    Echo, Filter, GainEnvelope, Lfo, NoiseGenerator, StereoPanner,
    ToneGenerator, VoiceBus,
)
from audio.spatial import spatial
from state.constants import (
    HALT_DELAY, RELEASE_TIME, PAN_TIME_CONSTANT, MURMUR_PAN_TIME_CONSTANT,
    AMBIENT_BREATH_DEPTH, MELODY_ATTACK, MELODY_DECAY_FLOOR, MELODY_TAIL,
)

IDLE = 'idle'
PLAYING = 'playing'
RELEASING = 'releasing'
STOPPED = 'stopped'
FINISHED = 'finished'
DISPOSED = 'disposed'


class Voice:
    """Base voice: bus, envelope, optional panner and generators."""

    kind = 'voice'
    directional = True
    pan_time_constant = PAN_TIME_CONSTANT

    def __init__(self, audio, place=None, name: Optional[str] = None):
        self.audio = audio
        self.place = place
        self.name = name or (place.title if place is not None else self.kind)
        self.bus = VoiceBus(audio, f"{self.kind}:{self.name}")
        self.envelope = GainEnvelope(self.bus)
        self.panner = StereoPanner(self.bus) if self.directional else None
        self.generators: List[ToneGenerator] = []
        self.effects = []
        self.state = IDLE
        self.lifetime: Optional[float] = None
        self.age = 0.0
        self._halt_in = 0.0
        self._dispose_pending = False

    # === Contract ===

    @property
    def bearing(self) -> Optional[float]:
        return self.place.bearing if self.place is not None else None

    @property
    def pan(self) -> float:
        """Current (smoothed) pan; 0 for non-directional voices."""
        return self.panner.pan.effective if self.panner is not None else 0.0

    @property
    def target_pan(self) -> float:
        """Pan the voice is moving towards."""
        return self.panner.pan.target if self.panner is not None else 0.0

    @property
    def is_finished(self) -> bool:
        """True once the voice makes no more sound and has nothing pending."""
        if self.state in (FINISHED, DISPOSED):
            return True
        return self.state == STOPPED and not self._dispose_pending

    @property
    def is_disposed(self) -> bool:
        return self.state == DISPOSED

    @property
    def is_releasing(self) -> bool:
        return self.state == RELEASING

    def start(self, heading: float = 0.0):
        """Place the voice for the heading and start its generators."""
        if self.state != IDLE:
            return
        if self.panner is not None:
            pan, _ = spatial.calculate_pan(self.bearing, heading)
            self.panner.pan.set_value(pan)
        for generator in self.generators:
            generator.start()
        self.state = PLAYING
        self._on_start()
        event_log.voice("start", self.kind, self.name)

    def stop(self):
        """Begin a graceful release."""
        if self.state == IDLE:
            self.state = STOPPED
            return
        if self.state != PLAYING:
            return
        gain = self.envelope.gain
        gain.cancel()
        gain.linear_ramp_to(0.0, RELEASE_TIME)
        self._halt_in = HALT_DELAY
        self.state = RELEASING
        event_log.voice("release", self.kind, self.name)

    def dispose(self):
        """Sever all connections, now or when the release completes."""
        if self.state == DISPOSED:
            return
        if self.state == RELEASING:
            self._dispose_pending = True
            return
        self.sever()

    def repan(self, heading: float):
        """Move the pan towards the position for the new heading."""
        if self.panner is None or self.state not in (IDLE, PLAYING):
            return
        pan, _ = spatial.calculate_pan(self.bearing, heading)
        self.panner.pan.set_target(pan, self.pan_time_constant)
        if self.bearing is not None:
            event_log.spatial(self.name, pan, self.bearing, heading)

    def update(self, dt: float):
        """Advance automation, modulation and the release timer."""
        if self.state in (IDLE, DISPOSED):
            return
        self.age += dt
        if self.state in (PLAYING, RELEASING):
            self._modulate(dt)
        self.envelope.advance(dt)
        if self.panner is not None:
            self.panner.advance(dt)
        for generator in self.generators:
            generator.advance(dt)
        for effect in self.effects:
            effect.advance(dt)

        if self.state == RELEASING:
            self._halt_in -= dt
            if self._halt_in <= 0:
                self._halt(STOPPED)
                if self._dispose_pending:
                    self.sever()
        elif self.state == PLAYING and self.lifetime is not None and self.age >= self.lifetime:
            self._halt(FINISHED)
            event_log.voice("finish", self.kind, self.name)

    # === Hooks ===

    def _on_start(self):
        """Schedule the fade-in."""

    def _modulate(self, dt: float):
        """Per-frame modulation (LFOs)."""

    # === Teardown ===

    def _halt(self, state: str):
        for generator in self.generators:
            generator.halt()
        self.state = state

    def sever(self):
        """Tear down immediately, even mid-release."""
        for generator in self.generators:
            generator.halt()
            generator.disconnect()
        self.bus.release()
        for effect in self.effects:
            effect.release()
        self.state = DISPOSED
        self._dispose_pending = False
        event_log.voice("dispose", self.kind, self.name)

    def _fade_in(self, level: float, duration: float):
        gain = self.envelope.gain
        gain.set_value(0.0)
        gain.linear_ramp_to(level, duration)

    def __repr__(self):
        return f"<{type(self).__name__} {self.name!r} {self.state}>"


class PartialClusterVoice(Voice):
    """Sustained cluster of sine partials, each breathing at its own rate."""

    kind = 'cluster'

    def __init__(self, audio, place, frequency: float, partials: int, level: float,
                 fade_in: float, breath_rates: Sequence[float], breath_phases: Sequence[float]):
        super().__init__(audio, place)
        self.frequency = frequency
        self.level = level
        self.fade_in = fade_in
        self._breaths = []
        for k in range(1, partials + 1):
            base = 1.0 / k
            generator = ToneGenerator(audio, self.bus, 'sine', frequency * k,
                                      level=base * (1.0 - AMBIENT_BREATH_DEPTH / 2.0))
            self.generators.append(generator)
            lfo = Lfo(breath_rates[k - 1], AMBIENT_BREATH_DEPTH, breath_phases[k - 1])
            self._breaths.append((generator, lfo, base))

    @property
    def partial_frequencies(self) -> List[float]:
        return [g.frequency.value for g in self.generators]

    def _on_start(self):
        self._fade_in(self.level, self.fade_in)

    def _modulate(self, dt):
        # Level swings between base * (1 - depth) and base
        for generator, lfo, base in self._breaths:
            generator.level.modulation = base * lfo.advance(dt) / 2.0


class DroneVoice(Voice):
    """Low sawtooth floor through a low-pass filter. Not directional."""

    kind = 'drone'
    directional = False

    def __init__(self, audio, frequency: float, cutoff: float, level: float, fade_in: float):
        super().__init__(audio, name='drone')
        self.level = level
        self.fade_in = fade_in
        self.filter = Filter(audio, 'lowpass', cutoff)
        generator = ToneGenerator(audio, self.bus, 'sawtooth', frequency)
        generator.insert(self.filter)
        self.generators.append(generator)
        self.effects.append(self.filter)

    def _on_start(self):
        self._fade_in(self.level, self.fade_in)


class MurmurVoice(Voice):
    """Sawtooth through a wobbling band-pass, placed at one place."""

    kind = 'murmur'
    pan_time_constant = MURMUR_PAN_TIME_CONSTANT

    def __init__(self, audio, place, frequency: float, formant: float, q: float,
                 wobble_rate: float, wobble_depth: float, level: float, fade_in: float):
        super().__init__(audio, place)
        self.level = level
        self.fade_in = fade_in
        self.filter = Filter(audio, 'bandpass', formant, q)
        self.wobble = Lfo(wobble_rate, wobble_depth)
        generator = ToneGenerator(audio, self.bus, 'sawtooth', frequency)
        generator.insert(self.filter)
        self.generators.append(generator)
        self.effects.append(self.filter)

    def _on_start(self):
        self._fade_in(self.level, self.fade_in)

    def _modulate(self, dt):
        self.filter.frequency.modulation = self.wobble.advance(dt)


class NoiseBedVoice(Voice):
    """Band-passed noise under the whole crowd. Not directional."""

    kind = 'noise'
    directional = False

    def __init__(self, audio, center: float, q: float, level: float, fade_in: float):
        super().__init__(audio, name='noise')
        self.level = level
        self.fade_in = fade_in
        self.filter = Filter(audio, 'bandpass', center, q)
        generator = NoiseGenerator(audio, self.bus)
        generator.insert(self.filter)
        self.generators.append(generator)
        self.effects.append(self.filter)

    def _on_start(self):
        self._fade_in(self.level, self.fade_in)


class NoteVoice(Voice):
    """A single plucked melody note; ends on its own."""

    kind = 'note'

    def __init__(self, audio, place, frequency: float, waveform: str, cutoff: float,
                 q: float, volume: float, duration: float, echo: Optional[dict] = None):
        super().__init__(audio, place)
        self.frequency = frequency
        self.waveform = waveform
        self.volume = volume
        self.duration = duration
        self.lifetime = duration + MELODY_TAIL
        self.filter = Filter(audio, 'lowpass', cutoff, q)
        generator = ToneGenerator(audio, self.bus, waveform, frequency)
        generator.insert(self.filter)
        self.generators.append(generator)
        self.effects.append(self.filter)
        if echo:
            self.echo = Echo(audio, echo['delay_ms'], echo['feedback'], echo['wet_db'])
            self.bus.insert(self.echo)
            self.effects.append(self.echo)
        else:
            self.echo = None

    def _on_start(self):
        gain = self.envelope.gain
        gain.set_value(0.0)
        gain.linear_ramp_to(self.volume, MELODY_ATTACK)
        gain.exponential_ramp_to(MELODY_DECAY_FLOOR, max(0.0, self.duration - MELODY_ATTACK))
